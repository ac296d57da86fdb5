"""Reconciler: pairs local task/category state with persistence.

Every intent runs guard -> persist -> apply -> record:

- guards (validation, range, not-found) raise before anything changes;
- the persistence hook runs next; a `RemoteFailure` there leaves local state
  untouched and produces a notice instead of an exception;
- only then is local state mutated and a history entry recorded.

`LocalReconciler` persists nothing; `RemoteReconciler` (see `sync.py`)
mirrors every step to a `RemoteStore`.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Tuple

from ..errors import NotFoundError, RemoteFailure
from ..models import (
    AddEntry,
    Category,
    DeleteEntry,
    EditEntry,
    HistoryEntry,
    ReorderEntry,
    Task,
    ToggleEntry,
)
from .categories import CategoryDeleteResult, CategoryRegistry
from .history import MAX_HISTORY_SIZE, HistoryLog
from .projection import TaskFilter, TaskStats, compute_stats, project
from .task_store import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    """User-visible message produced by a failed or refused operation."""
    level: str
    operation: str
    message: str
    created_at: datetime = field(default_factory=datetime.now)


class Reconciler(ABC):
    """State manager for one user's tasks and categories.

    Attributes:
        owner_id: Identity every persisted row is scoped to
        store: Task Store
        categories: Category Registry
        history: Undo/redo log
        current_filter: Filter the view is projected with
        editing_task_id: Task currently open for editing, if any
        notices: Most recent user-visible notices
    """

    def __init__(
        self,
        owner_id: str,
        categories: CategoryRegistry,
        history_limit: int = MAX_HISTORY_SIZE,
        on_notice: Optional[Callable[[Notice], None]] = None,
    ):
        self.owner_id = owner_id
        self.store = TaskStore()
        self.categories = categories
        self.history = HistoryLog(history_limit)
        self.current_filter: str = TaskFilter.ALL.value
        self.editing_task_id: Optional[int] = None
        self.notices: Deque[Notice] = deque(maxlen=100)
        self.on_notice = on_notice

    # --- Persistence hooks ---

    @abstractmethod
    async def load(self) -> bool:
        """Populate state for the owner. Returns False if loading failed."""

    @abstractmethod
    async def _persist_add(self, task: Task) -> Task:
        """Persist a new task and return it with any remote key attached."""

    @abstractmethod
    async def _persist_changes(self, task: Task, values: Dict[str, Any]) -> None:
        """Persist changed field values of an existing task."""

    @abstractmethod
    async def _persist_delete(self, task: Task) -> None:
        """Persist removal of a task."""

    @abstractmethod
    async def _persist_positions(self, changes: List[Tuple[int, int]]) -> None:
        """Persist (task id, position) pairs, one write per task."""

    @abstractmethod
    async def _persist_category(self, category: Category) -> Category:
        """Persist a new category and return it with its final id."""

    @abstractmethod
    async def _persist_category_delete(self, category_id: str, reassign_to_default: bool) -> None:
        """Persist category removal, moving its tasks to the default first if asked."""

    async def _refresh_counts(self) -> None:
        self.categories.recompute_counts(self.store.tasks)

    async def _recover(self, operation: str) -> None:
        """Restore ground truth after a partially applied operation."""

    # --- Notices ---

    def _notify(self, level: str, operation: str, message: str) -> Notice:
        notice = Notice(level=level, operation=operation, message=message)
        self.notices.append(notice)
        if self.on_notice is not None:
            self.on_notice(notice)
        return notice

    def _fail(self, operation: str, error: RemoteFailure) -> Notice:
        logger.error(f"Could not {operation} for {self.owner_id}: {error}")
        return self._notify("error", operation, f"Could not {operation}: {error}")

    # --- Reads ---

    def set_filter(self, task_filter: str) -> None:
        self.current_filter = task_filter.value if isinstance(task_filter, TaskFilter) else task_filter

    def view(self) -> List[Task]:
        return project(self.store.tasks, self.current_filter)

    def stats(self) -> TaskStats:
        return compute_stats(self.store.tasks)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def start_editing(self, task_id: Optional[int]) -> None:
        if task_id is not None:
            self.store.require(task_id)
        self.editing_task_id = task_id

    # --- Task intents ---

    async def add_task(self, **fields: Any) -> Optional[Task]:
        """Create a task.

        Args:
            **fields: text (required), description, completed, priority,
                scheduled_for, estimated_hours, category

        Returns:
            The created task, or None when persisting failed

        Raises:
            ValidationError: If a field is invalid
        """
        category_id = self.categories.resolve(fields.pop("category", None))
        task = self.store.build_task(category_id=category_id, **fields)
        try:
            task = await self._persist_add(task)
        except RemoteFailure as e:
            self._fail("add task", e)
            return None
        self.store.insert(task)
        self.history.record(AddEntry(task=task.model_copy(), index=self.store.index_of(task.id)))
        await self._refresh_counts()
        logger.info(f"Added task {task.id} for {self.owner_id}")
        return task

    async def toggle_task(self, task_id: int) -> Optional[Task]:
        """Flip completion. Unknown ids are a silent no-op returning None."""
        task = self.store.get(task_id)
        if task is None:
            logger.debug(f"Toggle ignored, task {task_id} is gone")
            return None
        new_state = not task.completed
        try:
            await self._persist_changes(task, {"completed": new_state})
        except RemoteFailure as e:
            self._fail("update task", e)
            return None
        self.store.set_completed(task_id, new_state)
        self.history.record(ToggleEntry(task_id=task_id, previous=not new_state, new=new_state))
        return task

    async def edit_task(self, task_id: int, changes: Mapping[str, Any]) -> Optional[Task]:
        """Apply a partial update.

        An update that changes no field is a no-op: nothing is persisted and
        no history entry is recorded.

        Returns:
            The task (changed or not), or None when persisting failed

        Raises:
            NotFoundError: If the task does not exist
            ValidationError: If a supplied value is invalid
        """
        changes = dict(changes)
        if "category" in changes:
            changes["category"] = self.categories.resolve(changes["category"])
        previous, new = self.store.diff(task_id, changes)
        task = self.store.require(task_id)
        if not new:
            self.editing_task_id = None
            return task
        try:
            await self._persist_changes(task, new)
        except RemoteFailure as e:
            self._fail("update task", e)
            return None
        self.store.apply_changes(task_id, new)
        self.history.record(EditEntry(task_id=task_id, previous=previous, new=new))
        self.editing_task_id = None
        await self._refresh_counts()
        return task

    async def delete_task(self, task_id: int) -> Optional[Task]:
        """Remove a task.

        Raises:
            NotFoundError: If the task does not exist
        """
        task = self.store.require(task_id)
        try:
            await self._persist_delete(task)
        except RemoteFailure as e:
            self._fail("delete task", e)
            return None
        task, index = self.store.delete_task(task_id)
        self.history.record(DeleteEntry(task=task.model_copy(), index=index))
        if self.editing_task_id == task_id:
            self.editing_task_id = None
        await self._refresh_counts()
        return task

    async def reorder_task(self, source_index: int, destination_index: int) -> bool:
        """Move a task within the current view.

        Raises:
            RangeError: If an index is outside the view or both are equal
        """
        changes = self.store.plan_reorder(self.view(), source_index, destination_index)
        try:
            await self._persist_positions(changes)
        except RemoteFailure as e:
            self._fail("reorder tasks", e)
            await self._recover("reorder tasks")
            return False
        self.store.apply_positions(changes)
        logger.info(f"Moved task from {source_index} to {destination_index}, {len(changes)} position(s) changed")
        return True

    # --- Category intents ---

    async def add_category(self, name: str, color: str) -> Optional[Category]:
        """Create a category.

        Raises:
            ValidationError: If the name is empty or taken, or the color is malformed
        """
        category = self.categories.build_category(name, color)
        try:
            category = await self._persist_category(category)
        except RemoteFailure as e:
            self._fail("add category", e)
            return None
        self.categories.register(category)
        return category

    async def delete_category(self, category_id: str, reassign_to_default: bool = False) -> CategoryDeleteResult:
        """Delete a category; refusals come back in the result.

        Raises:
            NotFoundError: If the category does not exist
        """
        refusal = self.categories.check_delete(category_id, self.store.tasks, reassign_to_default)
        if refusal is not None:
            logger.warning(f"Refused to delete category {category_id}: {refusal}")
            self._notify("warning", "delete category", str(refusal))
            return CategoryDeleteResult(category_id=category_id, refusal=refusal)
        try:
            await self._persist_category_delete(category_id, reassign_to_default)
        except RemoteFailure as e:
            self._fail("delete category", e)
            await self._recover("delete category")
            return CategoryDeleteResult(category_id=category_id, failure=e)
        result = self.categories.delete_category(category_id, self.store, reassign_to_default)
        if self.current_filter == category_id:
            self.current_filter = TaskFilter.ALL.value
        await self._refresh_counts()
        return result

    # --- History ---

    async def undo(self) -> bool:
        """Revert the most recent applied entry. Returns False when nothing changed."""
        entry = self.history.peek_undo()
        if entry is None:
            return False
        return await self._replay(entry, reverse=True)

    async def redo(self) -> bool:
        """Re-apply the next undone entry. Returns False when nothing changed."""
        entry = self.history.peek_redo()
        if entry is None:
            return False
        return await self._replay(entry, reverse=False)

    async def _replay(self, entry: HistoryEntry, reverse: bool) -> bool:
        operation = "undo" if reverse else "redo"
        commit = self.history.commit_undo if reverse else self.history.commit_redo
        try:
            await self._apply_entry(entry, reverse)
        except RemoteFailure as e:
            self._fail(operation, e)
            await self._recover(operation)
            return False
        except NotFoundError as e:
            # The target vanished (e.g. after a reload); step past the entry
            logger.warning(f"Skipping {entry.kind} entry on {operation}: {e}")
            self._notify("warning", operation, f"Could not {operation} {entry.kind}: {e}")
            commit()
            return False
        commit()
        self.editing_task_id = None
        await self._refresh_counts()
        logger.debug(f"{operation} {entry.kind}, cursor at {self.history.cursor}")
        return True

    async def _apply_entry(self, entry: HistoryEntry, reverse: bool) -> None:
        if isinstance(entry, AddEntry):
            if reverse:
                await self._remove_task(entry.task.id)
            else:
                await self._restore_task(entry.task, entry.index)
        elif isinstance(entry, DeleteEntry):
            if reverse:
                await self._restore_task(entry.task, entry.index)
            else:
                await self._remove_task(entry.task.id)
        elif isinstance(entry, EditEntry):
            await self._write_values(entry.task_id, entry.previous if reverse else entry.new)
        elif isinstance(entry, ToggleEntry):
            await self._write_values(entry.task_id, {"completed": entry.previous if reverse else entry.new})
        elif isinstance(entry, ReorderEntry):
            positions = entry.previous_positions if reverse else entry.new_positions
            changes = list(positions.items())
            await self._persist_positions(changes)
            self.store.apply_positions(changes)

    async def _remove_task(self, task_id: int) -> None:
        task = self.store.require(task_id)
        await self._persist_delete(task)
        self.store.remove(task_id)

    async def _restore_task(self, snapshot: Task, index: int) -> None:
        existing = self.store.get(snapshot.id)
        if existing is not None:
            # Restored by an earlier replay whose position writes failed
            shifted = self.store.make_room(existing.sort_order, exclude_id=existing.id)
            if shifted:
                await self._persist_positions(shifted)
            return
        task = snapshot.model_copy(update={"category": self.categories.resolve(snapshot.category)})
        task = await self._persist_add(task)
        shifted = self.store.insert(task, index)
        if shifted:
            await self._persist_positions(shifted)

    async def _write_values(self, task_id: int, values: Dict[str, Any]) -> None:
        values = dict(values)
        if "category" in values:
            values["category"] = self.categories.resolve(values["category"])
        task = self.store.require(task_id)
        await self._persist_changes(task, values)
        self.store.apply_changes(task_id, values)


class LocalReconciler(Reconciler):
    """In-memory variant: nothing is persisted, every operation applies directly."""

    def __init__(self, owner_id: str, history_limit: int = MAX_HISTORY_SIZE, on_notice=None):
        super().__init__(owner_id, CategoryRegistry.with_starter_set(), history_limit, on_notice)

    async def load(self) -> bool:
        self.categories.recompute_counts(self.store.tasks)
        return True

    async def _persist_add(self, task: Task) -> Task:
        return task

    async def _persist_changes(self, task: Task, values: Dict[str, Any]) -> None:
        return None

    async def _persist_delete(self, task: Task) -> None:
        return None

    async def _persist_positions(self, changes: List[Tuple[int, int]]) -> None:
        return None

    async def _persist_category(self, category: Category) -> Category:
        return category

    async def _persist_category_delete(self, category_id: str, reassign_to_default: bool) -> None:
        return None
