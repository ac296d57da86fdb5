"""Reversible edit records kept by the history log."""

from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, Field

from .task import Task


class AddEntry(BaseModel):
    """A created task; undone by removing it, redone by reinserting it at `index`."""
    kind: Literal["add"] = "add"
    task: Task
    index: int


class DeleteEntry(BaseModel):
    """A removed task and the storage index it occupied."""
    kind: Literal["delete"] = "delete"
    task: Task
    index: int


class EditEntry(BaseModel):
    """Changed fields only: `previous` holds the values before the edit."""
    kind: Literal["edit"] = "edit"
    task_id: int
    previous: Dict[str, Any]
    new: Dict[str, Any]


class ToggleEntry(BaseModel):
    kind: Literal["toggle"] = "toggle"
    task_id: int
    previous: bool
    new: bool


class ReorderEntry(BaseModel):
    """Position maps keyed by task id. Declared for completeness; reorders are not recorded."""
    kind: Literal["reorder"] = "reorder"
    previous_positions: Dict[int, int]
    new_positions: Dict[int, int]


HistoryEntry = Annotated[
    Union[AddEntry, DeleteEntry, EditEntry, ToggleEntry, ReorderEntry],
    Field(discriminator="kind"),
]
