"""
Request and response models.

Wire format is camelCase (`fullName`, `trainingPlan`, ...); Python code uses
snake_case field names. Presence and business-rule checks that need a
specific message live in the services; these models only pin shape and type.
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from uuid import UUID
from typing import Any, List, Literal, Optional, Type


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def to_payload(schema: Type[BaseModel], obj: Any) -> dict:
    """Serialize an ORM object (or dict) through a response schema into JSON-ready data."""
    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")


# ============ Accounts ============

class SignupRequest(CamelModel):
    username: str
    full_name: str
    email: EmailStr
    password: str


class LoginRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


class UserDetailsUpdate(CamelModel):
    username: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None


class UserResponse(CamelModel):
    """Account as exposed outward: never the hash or the refresh token."""
    id: UUID
    username: str
    full_name: str
    email: str
    is_admin: bool
    is_email_verified: bool
    created_at: datetime
    updated_at: datetime


# ============ Expenses ============

class ExpenseCreate(CamelModel):
    item: Optional[str] = None
    price: Optional[float] = Field(default=None, allow_inf_nan=False)
    category: Optional[str] = None
    date: Optional[datetime] = None


class ExpenseUpdate(CamelModel):
    item: Optional[str] = None
    price: Optional[float] = Field(default=None, allow_inf_nan=False)
    category: Optional[str] = None
    date: Optional[datetime] = None


class ExpenseResponse(CamelModel):
    id: UUID
    item: str
    price: float
    category: str
    date: datetime
    created_at: datetime
    updated_at: datetime


# ============ Todos ============

class TaskCreate(CamelModel):
    # Older clients send `tasktitle`
    title: Optional[str] = Field(default=None, validation_alias=AliasChoices("title", "tasktitle", "taskTitle"))
    completed: bool = False


class TodoCreate(CamelModel):
    title: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    tasks: Optional[List[TaskCreate]] = None


class TodoUpdate(TodoCreate):
    pass


class TaskPatch(CamelModel):
    task_id: Optional[UUID] = None
    task_title: Optional[str] = None
    completed: Optional[bool] = None


class TaskResponse(CamelModel):
    id: UUID
    title: str
    completed: bool


class TodoResponse(CamelModel):
    id: UUID
    user_id: UUID
    title: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: str
    tasks: List[TaskResponse] = []
    created_at: datetime
    updated_at: datetime


# ============ Training ============

class ExerciseSet(CamelModel):
    repetitions: int = Field(default=0, ge=0)


class Exercise(CamelModel):
    exercise_name: Optional[str] = Field(default=None, max_length=100)
    sets: List[ExerciseSet] = []
    rest_time: int = Field(default=0, ge=0)  # seconds


class TrainingCreate(CamelModel):
    training_name: Optional[str] = Field(default=None, max_length=100)
    category: Optional[str] = None
    training_plan: Optional[List[Exercise]] = None
    is_public: bool = False


class VisibilityUpdate(CamelModel):
    is_public: bool


class TrainingResponse(CamelModel):
    id: UUID
    user_id: UUID
    training_name: str
    category: str
    training_plan: List[Exercise]
    is_public: bool
    created_at: datetime
    updated_at: datetime


# ============ Weekly training ============

class TrainingDay(CamelModel):
    day_number: Optional[int] = None
    name: Optional[str] = Field(default=None, max_length=100)
    is_rest_day: bool = False
    workout_plan: Optional[List[Exercise]] = None


class TrainingWeek(CamelModel):
    week_number: Optional[int] = None
    category: Optional[str] = Field(default=None, max_length=100)
    days: Optional[List[TrainingDay]] = None


class WeeklyTrainingCreate(CamelModel):
    training_name: Optional[str] = Field(default=None, max_length=100)
    week: Optional[List[TrainingWeek]] = None


class WeeklyTrainingResponse(CamelModel):
    id: UUID
    user_id: UUID
    training_name: str
    week: List[TrainingWeek]
    created_at: datetime
    updated_at: datetime
