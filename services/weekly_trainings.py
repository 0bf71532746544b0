"""
Weekly training schedules: weeks -> days -> exercises.

The listing is one shared catalogue (all owners, one cache key).
"""

from __future__ import annotations

from typing import List, Tuple

from sqlalchemy.orm import Session

from core.auth import Identity
from core.cache import WEEKLY_TRAINING_CACHE_KEY, CacheStore
from core.exceptions import ValidationError
from core.pagination import ListParams
from models import WeeklyTraining
from schemas import TrainingWeek, WeeklyTrainingCreate, WeeklyTrainingResponse, to_payload
from services.trainings import serialize_exercises

DEFAULT_SORT = "createdAt"
SORTABLE = {
    "createdAt": WeeklyTraining.created_at,
    "trainingName": WeeklyTraining.training_name,
}


def _validate_weeks(weeks: List[TrainingWeek]) -> List[dict]:
    stored = []
    for week in weeks:
        if week.week_number is None or week.week_number < 1 or not week.days:
            raise ValidationError("Each week must have a week number and at least one day.")

        days = []
        for day in week.days:
            name = (day.name or "").strip()
            if day.day_number is None or day.day_number < 1 or not name:
                raise ValidationError("Each day must have a day number and name.")

            workout = day.workout_plan or []
            if not day.is_rest_day and not workout:
                raise ValidationError("Workout plan is required for non-rest days.")

            days.append({
                "dayNumber": day.day_number,
                "name": name,
                "isRestDay": day.is_rest_day,
                "workoutPlan": serialize_exercises(workout),
            })

        stored.append({
            "weekNumber": week.week_number,
            "category": (week.category or "").strip() or None,
            "days": days,
        })
    return stored


def create_weekly_training(
    db: Session, cache: CacheStore, identity: Identity, data: WeeklyTrainingCreate
) -> WeeklyTraining:
    training_name = (data.training_name or "").strip()
    if not training_name or not data.week:
        raise ValidationError("Training name and at least one week are required.")

    plan = WeeklyTraining(
        user_id=identity.id,
        training_name=training_name,
        week=_validate_weeks(data.week),
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)

    cache.invalidate(WEEKLY_TRAINING_CACHE_KEY)
    return plan


def list_weekly_trainings(db: Session, cache: CacheStore, params: ListParams) -> Tuple[List[dict], bool]:
    def load() -> List[dict]:
        query = params.apply(db.query(WeeklyTraining), SORTABLE, DEFAULT_SORT, tiebreak=WeeklyTraining.id)
        return [to_payload(WeeklyTrainingResponse, plan) for plan in query.all()]

    return cache.read_through(WEEKLY_TRAINING_CACHE_KEY, params.variant(DEFAULT_SORT), load)
