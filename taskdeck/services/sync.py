"""Remote-synchronized reconciler."""

import logging
from typing import Any, Dict, List, Tuple

from ..errors import RemoteFailure
from ..models import (
    Category,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ID,
    DEFAULT_CATEGORY_NAME,
    Task,
)
from ..models.task import to_remote_values
from ..remote.base import CATEGORIES_TABLE, TASKS_TABLE, RemoteStore
from .categories import CategoryRegistry
from .history import MAX_HISTORY_SIZE
from .reconciler import Reconciler
from .task_store import TaskStore

logger = logging.getLogger(__name__)


class RemoteReconciler(Reconciler):
    """Reconciler that writes to a RemoteStore before touching local state.

    Local ids are kept stable across reloads by mapping each remote key back
    to the local id it was first given.
    """

    def __init__(self, owner_id: str, remote: RemoteStore, history_limit: int = MAX_HISTORY_SIZE, on_notice=None):
        super().__init__(owner_id, CategoryRegistry(), history_limit, on_notice)
        self.remote = remote

    async def load(self) -> bool:
        """Fresh load: drop local state and history, then read everything."""
        self.history.clear()
        self.store = TaskStore()
        self.editing_task_id = None
        return await self.resync()

    async def resync(self) -> bool:
        """Re-read ground truth from the remote, keeping local ids and history."""
        try:
            category_rows = await self.remote.select(CATEGORIES_TABLE, self.owner_id, order_by="created_at")
            default_row = next(
                (row for row in category_rows if row["name"].lower() == DEFAULT_CATEGORY_NAME.lower()),
                None,
            )
            if default_row is None:
                seed = Category(id=DEFAULT_CATEGORY_ID, name=DEFAULT_CATEGORY_NAME, color=DEFAULT_CATEGORY_COLOR)
                default_row = await self.remote.insert(CATEGORIES_TABLE, seed.to_row(self.owner_id))
                category_rows.insert(0, default_row)
                logger.info(f"Created default category for {self.owner_id}")
            task_rows = await self.remote.select(TASKS_TABLE, self.owner_id, order_by="sort_order")
        except RemoteFailure as e:
            self._fail("load tasks", e)
            return False

        default_id = str(default_row["id"])
        self.categories.replace_all([Category.from_row(row) for row in category_rows], default_id=default_id)

        tasks = []
        for row in task_rows:
            local_id = self.store.local_id_for(str(row["id"])) or self.store.allocate_id()
            task = Task.from_row(row, local_id=local_id, default_category=default_id)
            task.category = self.categories.resolve(task.category)
            tasks.append(task)
        self.store.replace_all(tasks)
        if self.editing_task_id is not None and self.store.get(self.editing_task_id) is None:
            self.editing_task_id = None
        self.categories.recompute_counts(self.store.tasks)
        logger.info(f"Loaded {len(tasks)} task(s) and {len(category_rows)} category(ies) for {self.owner_id}")
        return True

    async def _recover(self, operation: str) -> None:
        logger.warning(f"Reloading state after failed {operation}")
        await self.resync()

    async def _refresh_counts(self) -> None:
        """Count tasks per category from the remote rows, not the local list."""
        try:
            rows = await self.remote.select(
                TASKS_TABLE, self.owner_id, order_by="sort_order", columns=["id", "category_id"]
            )
        except RemoteFailure as e:
            logger.warning(f"Could not refresh category counts, using local tasks: {e}")
            self.categories.recompute_counts(self.store.tasks)
            return
        counts: Dict[str, int] = {}
        for row in rows:
            category_id = self.categories.resolve(row.get("category_id"))
            counts[category_id] = counts.get(category_id, 0) + 1
        self.categories.apply_counts(counts)

    def _remote_id(self, task: Task, operation: str) -> str:
        if task.remote_id is None:
            raise RemoteFailure(f"Task {task.id} has no remote key", operation=operation)
        return task.remote_id

    async def _persist_add(self, task: Task) -> Task:
        row = await self.remote.insert(TASKS_TABLE, task.to_row(self.owner_id))
        return task.model_copy(update={"remote_id": str(row["id"])})

    async def _persist_changes(self, task: Task, values: Dict[str, Any]) -> None:
        await self.remote.update(
            TASKS_TABLE, self._remote_id(task, "update"), self.owner_id, to_remote_values(values)
        )

    async def _persist_delete(self, task: Task) -> None:
        await self.remote.delete(TASKS_TABLE, self._remote_id(task, "delete"), self.owner_id)

    async def _persist_positions(self, changes: List[Tuple[int, int]]) -> None:
        # No compensation on a mid-sequence failure; the caller reloads instead
        for task_id, position in changes:
            task = self.store.require(task_id)
            await self.remote.update(
                TASKS_TABLE, self._remote_id(task, "update"), self.owner_id, {"sort_order": position}
            )

    async def _persist_category(self, category: Category) -> Category:
        row = await self.remote.insert(CATEGORIES_TABLE, category.to_row(self.owner_id))
        return Category.from_row(row)

    async def _persist_category_delete(self, category_id: str, reassign_to_default: bool) -> None:
        if reassign_to_default:
            moved = await self.remote.update_where(
                TASKS_TABLE,
                self.owner_id,
                {"category_id": category_id},
                {"category_id": self.categories.default_id},
            )
            logger.info(f"Moved {moved} task(s) from category {category_id} to default")
        await self.remote.delete(CATEGORIES_TABLE, category_id, self.owner_id)
