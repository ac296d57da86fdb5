"""Models package."""
from .category import (
    Category,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ID,
    DEFAULT_CATEGORY_NAME,
    STARTER_CATEGORIES,
    slugify,
)
from .task import Task, TaskDraft, TaskPatch, TaskPriority, Priority, EDITABLE_FIELDS, parse_scheduled_for
from .history import AddEntry, DeleteEntry, EditEntry, ToggleEntry, ReorderEntry, HistoryEntry

__all__ = [
    "Category",
    "DEFAULT_CATEGORY_COLOR",
    "DEFAULT_CATEGORY_ID",
    "DEFAULT_CATEGORY_NAME",
    "STARTER_CATEGORIES",
    "slugify",
    "Task",
    "TaskDraft",
    "TaskPatch",
    "TaskPriority",
    "EDITABLE_FIELDS",
    "parse_scheduled_for",
    "AddEntry",
    "DeleteEntry",
    "EditEntry",
    "ToggleEntry",
    "ReorderEntry",
    "HistoryEntry",
    "Priority",
]
