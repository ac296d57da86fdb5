"""Table models for the SQL-backed remote store and local accounts."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_key() -> str:
    return str(uuid4())


class UserRecord(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=_new_key, primary_key=True)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=utc_now)


class TaskRecord(SQLModel, table=True):
    """Persisted task row, one per task, scoped by `user_id`."""
    __tablename__ = "tasks"

    id: str = Field(default_factory=_new_key, primary_key=True)
    user_id: str = Field(index=True)
    text: str = Field(max_length=500)
    description: Optional[str] = Field(default=None, max_length=2000)
    completed: bool = False
    priority: str = Field(default="medium", max_length=10)
    scheduled_for: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    category_id: Optional[str] = Field(default=None, index=True)
    sort_order: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class CategoryRecord(SQLModel, table=True):
    __tablename__ = "categories"

    id: str = Field(default_factory=_new_key, primary_key=True)
    user_id: str = Field(index=True)
    name: str = Field(max_length=100)
    color: str = Field(max_length=7)
    created_at: datetime = Field(default_factory=utc_now)
