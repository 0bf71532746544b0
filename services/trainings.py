"""
Training plan service.

Plans are private to their owner unless an admin marks them public.
Two cache keys are involved: the owner's list and the shared public list;
any write that can change either drops both.
"""

from __future__ import annotations

import logging
from typing import List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from core.auth import Identity
from core.cache import PUBLIC_TRAINING_CACHE_KEY, CacheStore, training_cache_key
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from core.pagination import ListParams
from core.permissions import can_delete_training, can_set_training_visibility
from models import TRAINING_CATEGORIES, Training
from schemas import Exercise, TrainingCreate, TrainingResponse, to_payload

logger = logging.getLogger(__name__)

DEFAULT_SORT = "createdAt"
SORTABLE = {
    "createdAt": Training.created_at,
    "trainingName": Training.training_name,
    "category": Training.category,
}


def normalize_category(category: str) -> str:
    normalized = category.strip().lower()
    if normalized not in TRAINING_CATEGORIES:
        raise ValidationError(
            f"Category must be one of: {', '.join(TRAINING_CATEGORIES)}", field="category"
        )
    return normalized


def serialize_exercises(exercises: List[Exercise]) -> List[dict]:
    """Check exercise names and return the stored (camelCase) form."""
    stored = []
    for exercise in exercises:
        name = (exercise.exercise_name or "").strip()
        if not name:
            raise ValidationError("Exercise name is required for each workout.", field="exerciseName")
        stored.append(exercise.model_copy(update={"exercise_name": name}).model_dump(by_alias=True))
    return stored


def _invalidate(cache: CacheStore, owner_id: UUID) -> None:
    cache.invalidate(training_cache_key(owner_id), PUBLIC_TRAINING_CACHE_KEY)


def create_training(db: Session, cache: CacheStore, identity: Identity, data: TrainingCreate) -> Training:
    training_name = (data.training_name or "").strip().lower()
    if not training_name or not (data.category or "").strip() or not data.training_plan:
        raise ValidationError("Please provide all required fields.")

    category = normalize_category(data.category)
    plan = serialize_exercises(data.training_plan)

    if data.is_public and not can_set_training_visibility(identity):
        raise ForbiddenError("Only an admin can publish a training plan")

    training = Training(
        user_id=identity.id,
        training_name=training_name,
        category=category,
        training_plan=plan,
        is_public=data.is_public,
    )
    db.add(training)
    db.commit()
    db.refresh(training)

    _invalidate(cache, identity.id)
    return training


def list_trainings(
    db: Session, cache: CacheStore, identity: Identity, params: ListParams
) -> Tuple[List[dict], bool]:
    """The caller's own plans, public or not."""

    def load() -> List[dict]:
        query = db.query(Training).filter(Training.user_id == identity.id)
        query = params.apply(query, SORTABLE, DEFAULT_SORT, tiebreak=Training.id)
        return [to_payload(TrainingResponse, training) for training in query.all()]

    return cache.read_through(training_cache_key(identity.id), params.variant(DEFAULT_SORT), load)


def list_public_trainings(db: Session, cache: CacheStore, params: ListParams) -> Tuple[List[dict], bool]:
    """Every public plan, whoever owns it. No ownership check."""

    def load() -> List[dict]:
        query = db.query(Training).filter(Training.is_public.is_(True))
        query = params.apply(query, SORTABLE, DEFAULT_SORT, tiebreak=Training.id)
        return [to_payload(TrainingResponse, training) for training in query.all()]

    return cache.read_through(PUBLIC_TRAINING_CACHE_KEY, params.variant(DEFAULT_SORT), load)


def set_visibility(
    db: Session, cache: CacheStore, identity: Identity, training_id: UUID, is_public: bool
) -> Training:
    """Publish or unpublish a plan. Admin only, checked before the lookup."""
    if not can_set_training_visibility(identity):
        raise ForbiddenError("Only an admin can change training visibility")

    training = db.get(Training, training_id)
    if not training:
        raise NotFoundError("Training not found")

    training.is_public = is_public
    db.commit()
    db.refresh(training)

    _invalidate(cache, training.user_id)
    logger.info(f"Training {training.id} visibility set to {'public' if is_public else 'private'} by {identity.id}")
    return training


def delete_training(db: Session, cache: CacheStore, identity: Identity, training_id: UUID) -> None:
    training = db.get(Training, training_id)
    if not training:
        raise NotFoundError("Training not found")

    if not can_delete_training(identity, training):
        if training.is_public:
            raise ForbiddenError("Only an admin can delete a public training plan")
        raise ForbiddenError("You can only delete your own training plans")

    owner_id = training.user_id
    db.delete(training)
    db.commit()

    _invalidate(cache, owner_id)
