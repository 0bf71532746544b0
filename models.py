from sqlalchemy import Column, Boolean, CheckConstraint, DateTime, Float, ForeignKey, Integer, Text, String, Uuid, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base, JSONDocument
import uuid
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Owner references (user_id) are plain indexed columns, not foreign keys:
# deleting an account leaves its records in place.

EXPENSE_CATEGORIES = ("need", "emi", "personal", "investment")
TODO_PRIORITIES = ("low", "medium", "high")
TRAINING_CATEGORIES = (
    "high intensity",
    "cardio",
    "cutting",
    "gaining",
    "abdominal(abs)",
    "beginner",
    "intermediate",
    "advance",
)


class User(Base):
    __tablename__ = "user_account"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(100), unique=True, nullable=False)
    full_name = Column(String(100), nullable=False)
    email = Column(String(320), unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    # Single active session: the only refresh token that /refresh-token accepts
    refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Expense(Base):
    __tablename__ = "expense"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    item = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    category = Column(String(20), nullable=False)
    date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_expense_price_non_negative"),
        CheckConstraint(
            "category IN ('need', 'emi', 'personal', 'investment')",
            name="ck_expense_category",
        ),
        Index("ix_expense_user_date", "user_id", "date"),
    )


class Todo(Base):
    __tablename__ = "todo"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    title = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    priority = Column(String(10), default="medium", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    tasks = relationship(
        "TodoTask",
        back_populates="todo",
        order_by="TodoTask.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("priority IN ('low', 'medium', 'high')", name="ck_todo_priority"),
    )


class TodoTask(Base):
    """A subtask; lives and dies with its parent todo."""
    __tablename__ = "todo_task"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    todo_id = Column(Uuid, ForeignKey("todo.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    title = Column(Text, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)

    todo = relationship("Todo", back_populates="tasks")


class Training(Base):
    __tablename__ = "training"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    training_name = Column(String(100), nullable=False)
    category = Column(String(30), nullable=False)
    # [{"exerciseName": str, "sets": [{"repetitions": int}], "restTime": int}]
    training_plan = Column(JSONDocument, nullable=False, default=list)
    is_public = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class WeeklyTraining(Base):
    __tablename__ = "weekly_training"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    training_name = Column(String(100), nullable=False)
    # [{"weekNumber", "category", "days": [{"dayNumber", "name", "isRestDay", "workoutPlan": [...]}]}]
    week = Column(JSONDocument, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
