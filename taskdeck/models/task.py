from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from .category import DEFAULT_CATEGORY_ID

# Scheduled dates given without a time land at 09:00
DEFAULT_SCHEDULE_TIME = time(9, 0)

EDITABLE_FIELDS = (
    "text",
    "description",
    "completed",
    "priority",
    "scheduled_for",
    "estimated_hours",
    "category",
)


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Short alias used by the API schemas
Priority = TaskPriority


def parse_scheduled_for(value: Any) -> Optional[datetime]:
    """Normalize a scheduled value to a datetime.

    Accepts datetimes, dates and ISO strings ("2025-03-01" or
    "2025-03-01T14:30"). A bare date is scheduled at 09:00.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, DEFAULT_SCHEDULE_TIME)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if "T" not in text and " " not in text:
            return datetime.combine(date.fromisoformat(text), DEFAULT_SCHEDULE_TIME)
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    raise ValueError(f"Unsupported scheduled value: {value!r}")


def _clean_text(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValueError("Task text cannot be empty")
    return str(value).strip()


def _clean_priority(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class TaskBase(SQLModel):
    text: str = Field(max_length=500)
    description: str = Field(default="", max_length=2000)
    completed: bool = False
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    scheduled_for: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)

    @field_validator("text", mode="before")
    @classmethod
    def parse_text(cls, v):
        return _clean_text(v)

    @field_validator("description", mode="before")
    @classmethod
    def parse_description(cls, v):
        return "" if v is None else v

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        return _clean_priority(v)

    @field_validator("scheduled_for", mode="before")
    @classmethod
    def parse_schedule(cls, v):
        return parse_scheduled_for(v)


class Task(TaskBase):
    """A task held in local state.

    Attributes:
        id: Local ordinal used for all in-memory addressing
        remote_id: Key assigned by the remote store, if any
        text: Task title (required, trimmed)
        description: Free-text details
        completed: Whether the task is done
        priority: Priority level (high, medium, low)
        scheduled_for: Optional scheduled date and time
        estimated_hours: Optional effort estimate, never negative
        category: Id of the category the task belongs to
        sort_order: Global display position
        created_at: Timestamp when the task was created
    """
    id: int
    remote_id: Optional[str] = None
    category: str = DEFAULT_CATEGORY_ID
    sort_order: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def editable_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in EDITABLE_FIELDS}

    def to_row(self, owner_id: str) -> Dict[str, Any]:
        """Serialize to a remote `tasks` row (without the remote key)."""
        row = to_remote_values(self.editable_values())
        row.update({
            "sort_order": self.sort_order,
            "user_id": owner_id,
            "created_at": self.created_at.isoformat(),
        })
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any], local_id: int, default_category: str) -> "Task":
        """Build a local task from a remote `tasks` row."""
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        return cls(
            id=local_id,
            remote_id=str(row["id"]),
            text=row["text"],
            description=row.get("description") or "",
            completed=bool(row.get("completed", False)),
            priority=row.get("priority") or TaskPriority.MEDIUM,
            scheduled_for=row.get("scheduled_for"),
            estimated_hours=row.get("estimated_hours"),
            category=row.get("category_id") or default_category,
            sort_order=row.get("sort_order") or 0,
            created_at=created_at or datetime.now(timezone.utc),
        )


class TaskDraft(TaskBase):
    """Validated payload for a new task; category resolved by the registry."""
    category: Optional[str] = None


class TaskPatch(SQLModel):
    """Validated partial update. Only fields that were set are applied."""
    text: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None, max_length=2000)
    completed: Optional[bool] = None
    priority: Optional[TaskPriority] = None
    scheduled_for: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None

    @field_validator("text", mode="before")
    @classmethod
    def parse_text(cls, v):
        return _clean_text(v)

    @field_validator("description", mode="before")
    @classmethod
    def parse_description(cls, v):
        return "" if v is None else v

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        return _clean_priority(v)

    @field_validator("scheduled_for", mode="before")
    @classmethod
    def parse_schedule(cls, v):
        return parse_scheduled_for(v)


def to_remote_values(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate local task field values to remote column values."""
    row: Dict[str, Any] = {}
    for key, value in values.items():
        if key == "category":
            row["category_id"] = value
        elif key == "priority":
            row["priority"] = TaskPriority(value).value
        elif key == "scheduled_for":
            row["scheduled_for"] = value.isoformat() if value else None
        else:
            row[key] = value
    return row
