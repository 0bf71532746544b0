"""
Training plan and weekly schedule endpoints.

Literal paths (`/public`, `/weeklyTraining`) are declared before
`/{training_id}`.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from uuid import UUID

from core.auth import Identity, get_current_identity
from core.cache import CacheStore, get_cache
from core.database import get_db
from core.exceptions import NotFoundError
from core.pagination import ListParams, list_params
from schemas import (
    TrainingCreate,
    TrainingResponse,
    VisibilityUpdate,
    WeeklyTrainingCreate,
    WeeklyTrainingResponse,
    to_payload,
)
from services import trainings as training_service
from services import weekly_trainings as weekly_service

router = APIRouter(prefix="/api/v1/training", tags=["training"])


@router.post("")
def create_training(
    data: TrainingCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    training = training_service.create_training(db, cache, identity, data)
    return {
        "success": True,
        "message": "Training created successfully",
        "training": to_payload(TrainingResponse, training),
    }


@router.get("")
def list_trainings(
    params: ListParams = Depends(list_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    trainings, from_cache = training_service.list_trainings(db, cache, identity, params)
    if not trainings:
        raise NotFoundError("No training found for this user")

    message = (
        "Training data retrieved from cache successfully"
        if from_cache
        else "Training data retrieved successfully"
    )
    return {
        "success": True,
        "message": message,
        "userId": str(identity.id),
        "totalData": len(trainings),
        "trainingData": trainings,
    }


@router.get("/public")
def list_public_trainings(
    params: ListParams = Depends(list_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    """Every public plan. Any authenticated caller may read it."""
    trainings, from_cache = training_service.list_public_trainings(db, cache, params)
    message = (
        "Public training data retrieved from cache successfully"
        if from_cache
        else "Public training data retrieved successfully"
    )
    return {
        "success": True,
        "message": message,
        "totalData": len(trainings),
        "trainingData": trainings,
    }


@router.post("/weeklyTraining", status_code=status.HTTP_201_CREATED)
def create_weekly_training(
    data: WeeklyTrainingCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    plan = weekly_service.create_weekly_training(db, cache, identity, data)
    return {
        "success": True,
        "message": "Weekly training plan created successfully",
        "data": to_payload(WeeklyTrainingResponse, plan),
    }


@router.get("/weeklyTraining")
def list_weekly_trainings(
    params: ListParams = Depends(list_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    # Not filtered by owner: every caller sees every weekly plan
    plans, from_cache = weekly_service.list_weekly_trainings(db, cache, params)
    if not plans:
        raise NotFoundError("No weekly training plans found.")

    message = (
        "Weekly training plans retrieved from cache successfully"
        if from_cache
        else "Weekly training plans retrieved successfully"
    )
    return {"success": True, "message": message, "weeklyPlan": plans}


@router.patch("/{training_id}")
def set_training_visibility(
    training_id: UUID,
    data: VisibilityUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    """Publish or unpublish a plan (admin only)."""
    training = training_service.set_visibility(db, cache, identity, training_id, data.is_public)
    state = "public" if training.is_public else "private"
    return {
        "success": True,
        "message": f"Training is now {state}",
        "training": to_payload(TrainingResponse, training),
    }


@router.delete("/{training_id}")
def delete_training(
    training_id: UUID,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    training_service.delete_training(db, cache, identity, training_id)
    return {"success": True, "message": "Training deleted successfully"}
