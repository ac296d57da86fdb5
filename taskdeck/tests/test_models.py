"""Unit tests for the Task, Category and history entry models."""

import pytest
from datetime import date, datetime
from pydantic import TypeAdapter, ValidationError

from taskdeck.models import (
    Category,
    DEFAULT_CATEGORY_ID,
    HistoryEntry,
    Priority,
    Task,
    TaskPatch,
    TaskPriority,
    ToggleEntry,
    parse_scheduled_for,
    slugify,
)
from taskdeck.models.task import to_remote_values
from taskdeck.schemas.task import TaskCreate


def test_task_creation_minimal():
    """Test creating a task with minimal required fields."""
    task = Task(id=1, text="  Buy milk  ")

    assert task.id == 1
    assert task.text == "Buy milk"
    assert task.description == ""
    assert task.completed is False
    assert task.priority == TaskPriority.MEDIUM
    assert task.scheduled_for is None
    assert task.estimated_hours is None
    assert task.category == DEFAULT_CATEGORY_ID
    assert task.remote_id is None
    assert isinstance(task.created_at, datetime)
    assert task.created_at.tzinfo is not None


def test_priority_alias_is_the_enum():
    assert Priority is TaskPriority
    assert TaskCreate(text="A", priority="high").priority is TaskPriority.HIGH


def test_task_text_required():
    """Test that blank text is rejected."""
    with pytest.raises(ValidationError):
        Task(id=1, text="   ")


def test_task_priority_is_case_insensitive():
    task = Task(id=1, text="Call", priority="HIGH")
    assert task.priority == TaskPriority.HIGH


def test_task_rejects_negative_estimate():
    with pytest.raises(ValidationError):
        Task(id=1, text="Plan", estimated_hours=-1)


def test_scheduled_date_defaults_to_nine():
    """Test that a date without time is scheduled at 09:00."""
    assert parse_scheduled_for("2025-03-01") == datetime(2025, 3, 1, 9, 0)
    assert parse_scheduled_for(date(2025, 3, 1)) == datetime(2025, 3, 1, 9, 0)
    assert parse_scheduled_for("2025-03-01T14:30") == datetime(2025, 3, 1, 14, 30)
    assert parse_scheduled_for("") is None
    assert parse_scheduled_for(None) is None


def test_patch_only_reports_supplied_fields():
    patch = TaskPatch(completed=True)
    assert patch.model_dump(exclude_unset=True) == {"completed": True}


def test_to_remote_values_renames_category():
    values = to_remote_values({
        "category": "work",
        "priority": TaskPriority.HIGH,
        "scheduled_for": datetime(2025, 3, 1, 9, 0),
        "text": "Report",
    })

    assert values == {
        "category_id": "work",
        "priority": "high",
        "scheduled_for": "2025-03-01T09:00:00",
        "text": "Report",
    }


def test_task_row_round_trip_keeps_local_id():
    """Test that a task read back from a remote row keeps the given local id."""
    task = Task(id=7, text="Draft report", category="work", sort_order=3, priority="low")
    row = task.to_row("user-1")
    row["id"] = "abc"

    restored = Task.from_row(row, local_id=7, default_category=DEFAULT_CATEGORY_ID)

    assert row["user_id"] == "user-1"
    assert restored.id == 7
    assert restored.remote_id == "abc"
    assert restored.text == "Draft report"
    assert restored.category == "work"
    assert restored.sort_order == 3
    assert restored.priority == TaskPriority.LOW


def test_task_from_row_without_category_uses_default():
    task = Task.from_row({"id": 5, "text": "Loose"}, local_id=1, default_category="general")
    assert task.category == "general"
    assert task.remote_id == "5"


class TestCategory:
    """Tests for the Category model."""

    def test_color_is_normalized(self):
        category = Category(id="work", name=" Work ", color="#3b82f6")
        assert category.name == "Work"
        assert category.color == "#3B82F6"
        assert category.count == 0

    def test_invalid_color_rejected(self):
        with pytest.raises(ValidationError):
            Category(id="work", name="Work", color="blue")

    def test_row_omits_count(self):
        row = Category(id="work", name="Work", color="#3B82F6", count=4).to_row("user-1")
        assert "count" not in row
        assert row["user_id"] == "user-1"

    def test_slugify(self):
        assert slugify("  Side Projects ") == "side-projects"


def test_history_entries_discriminate_on_kind():
    entry = TypeAdapter(HistoryEntry).validate_python(
        {"kind": "toggle", "task_id": 1, "previous": False, "new": True}
    )
    assert isinstance(entry, ToggleEntry)
    assert entry.new is True
