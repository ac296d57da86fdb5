import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from pydantic import field_validator
from sqlmodel import Field, SQLModel

DEFAULT_CATEGORY_ID = "general"
DEFAULT_CATEGORY_NAME = "General"
DEFAULT_CATEGORY_COLOR = "#6B7280"
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Seed set for the in-memory variant; the first entry is the default category
STARTER_CATEGORIES = [
    (DEFAULT_CATEGORY_ID, DEFAULT_CATEGORY_NAME, DEFAULT_CATEGORY_COLOR),
    ("work", "Work", "#3B82F6"),
    ("personal", "Personal", "#10B981"),
    ("urgent", "Urgent", "#EF4444"),
]


def slugify(name: str) -> str:
    """Derive a local category id from its display name."""
    return re.sub(r"\s+", "-", name.strip().lower())


class Category(SQLModel):
    """A task category.

    `count` is derived from the task list and never persisted.
    """
    id: str
    name: str = Field(min_length=1, max_length=100)
    color: str = DEFAULT_CATEGORY_COLOR
    count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("name", mode="before")
    @classmethod
    def parse_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        if not COLOR_PATTERN.match(v):
            raise ValueError(f"Invalid color '{v}', expected #RRGGBB")
        return v.upper()

    def to_row(self, owner_id: str) -> Dict[str, Any]:
        return {
            "name": self.name,
            "color": self.color,
            "user_id": owner_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Category":
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        return cls(
            id=str(row["id"]),
            name=row["name"],
            color=row.get("color") or DEFAULT_CATEGORY_COLOR,
            created_at=created_at or datetime.now(timezone.utc),
        )
