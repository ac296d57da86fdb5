"""In-memory task store: ordered tasks and their sort positions."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..errors import NotFoundError, RangeError, ValidationError
from ..models import DEFAULT_CATEGORY_ID, Task, TaskDraft, TaskPatch

logger = logging.getLogger(__name__)

# Fields whose value can never be cleared by an edit
_NON_NULLABLE = ("text", "description", "completed", "priority", "category")


def _validation_message(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in error.errors()
    )


class TaskStore:
    """Holds the tasks of one user in storage order.

    Storage order is the order tasks were inserted; display order is
    `sort_order`, which the view projection sorts on.
    """

    def __init__(self, tasks: Optional[Iterable[Task]] = None):
        self._tasks: List[Task] = list(tasks) if tasks is not None else []
        self._next_id = max((t.id for t in self._tasks), default=0) + 1

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: int) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def require(self, task_id: int) -> Task:
        task = self.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def index_of(self, task_id: int) -> int:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        raise NotFoundError(f"Task {task_id} not found")

    def local_id_for(self, remote_id: str) -> Optional[int]:
        for task in self._tasks:
            if task.remote_id == remote_id:
                return task.id
        return None

    def allocate_id(self) -> int:
        task_id = self._next_id
        self._next_id += 1
        return task_id

    def next_position(self) -> int:
        """Max existing position + 1, or 0 when empty."""
        return max((t.sort_order for t in self._tasks), default=-1) + 1

    # --- Building (pure guards, no state change) ---

    def build_task(self, category_id: str = DEFAULT_CATEGORY_ID, **fields: Any) -> Task:
        """Validate fields and produce an unregistered task.

        Args:
            category_id: Already-resolved category id
            **fields: text, description, completed, priority, scheduled_for, estimated_hours

        Returns:
            Task with the next id and next sort position

        Raises:
            ValidationError: If text is empty or another field is invalid
        """
        fields.pop("category", None)
        try:
            draft = TaskDraft(**fields)
        except PydanticValidationError as e:
            raise ValidationError(_validation_message(e)) from e
        return Task(
            id=self.allocate_id(),
            category=category_id,
            sort_order=self.next_position(),
            **draft.model_dump(exclude={"category"}),
        )

    def diff(self, task_id: int, changes: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Compare a partial update against the current task.

        Returns:
            (previous, new) subsets holding only the fields whose value differs.
            Both are empty when the update changes nothing.

        Raises:
            NotFoundError: If the task does not exist
            ValidationError: If a supplied value is invalid
        """
        task = self.require(task_id)
        try:
            patch = TaskPatch(**changes)
        except PydanticValidationError as e:
            raise ValidationError(_validation_message(e)) from e
        supplied = patch.model_dump(exclude_unset=True)
        previous: Dict[str, Any] = {}
        new: Dict[str, Any] = {}
        for key, value in supplied.items():
            if value is None and key in _NON_NULLABLE:
                if key == "text":
                    raise ValidationError("Task text cannot be empty")
                continue
            current = getattr(task, key)
            if current != value:
                previous[key] = current
                new[key] = value
        return previous, new

    # --- Mutations ---

    def make_room(self, position: int, exclude_id: Optional[int] = None) -> List[Tuple[int, int]]:
        """Free `position` for one task by shifting the tasks at or after it.

        Nothing moves when no other task holds `position`.

        Returns:
            (task id, new position) pairs for tasks that were shifted
        """
        others = [t for t in self._tasks if t.id != exclude_id]
        shifted: List[Tuple[int, int]] = []
        if any(t.sort_order == position for t in others):
            for t in others:
                if t.sort_order >= position:
                    t.sort_order += 1
                    shifted.append((t.id, t.sort_order))
        return shifted

    def insert(self, task: Task, index: Optional[int] = None) -> List[Tuple[int, int]]:
        """Insert a task at a storage index (end when omitted).

        If another task already holds the inserted task's sort position, every
        task at or after that position moves up by one.

        Returns:
            (task id, new position) pairs for tasks that were shifted

        Raises:
            ValidationError: If a task with the same id is already stored
        """
        if self.get(task.id) is not None:
            raise ValidationError(f"Task {task.id} already exists")
        shifted = self.make_room(task.sort_order)
        if index is None or index > len(self._tasks):
            index = len(self._tasks)
        self._tasks.insert(index, task)
        if task.id >= self._next_id:
            self._next_id = task.id + 1
        return shifted

    def add_task(self, category_id: str = DEFAULT_CATEGORY_ID, **fields: Any) -> Task:
        """Validate, assign id and position, and append a new task."""
        task = self.build_task(category_id=category_id, **fields)
        self.insert(task)
        logger.info(f"Added task {task.id} at position {task.sort_order}")
        return task

    def toggle_task(self, task_id: int) -> Optional[Task]:
        """Flip `completed`. Unknown ids are ignored; the task may have been deleted meanwhile."""
        task = self.get(task_id)
        if task is None:
            return None
        task.completed = not task.completed
        return task

    def set_completed(self, task_id: int, completed: bool) -> Task:
        task = self.require(task_id)
        task.completed = completed
        return task

    def apply_changes(self, task_id: int, values: Dict[str, Any]) -> Task:
        """Write already-validated field values onto a task."""
        task = self.require(task_id)
        for key, value in values.items():
            setattr(task, key, value)
        return task

    def edit_task(self, task_id: int, changes: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Apply a partial update if anything actually differs.

        Returns:
            (previous, new) changed-field subsets; empty when nothing changed
        """
        previous, new = self.diff(task_id, changes)
        if new:
            self.apply_changes(task_id, new)
        return previous, new

    def remove(self, task_id: int) -> Tuple[Task, int]:
        """Remove a task and return it with the storage index it had."""
        index = self.index_of(task_id)
        task = self._tasks.pop(index)
        return task, index

    def delete_task(self, task_id: int) -> Tuple[Task, int]:
        task, index = self.remove(task_id)
        logger.info(f"Deleted task {task_id} from index {index}")
        return task, index

    def reassign_category(self, old_category: str, new_category: str) -> int:
        """Point every task in `old_category` at `new_category`; returns the number moved."""
        moved = 0
        for task in self._tasks:
            if task.category == old_category:
                task.category = new_category
                moved += 1
        return moved

    def replace_all(self, tasks: Iterable[Task]) -> None:
        self._tasks = list(tasks)
        self._next_id = max(self._next_id, max((t.id for t in self._tasks), default=0) + 1)

    # --- Ordering ---

    def plan_reorder(self, view: Sequence[Task], source_index: int, destination_index: int) -> List[Tuple[int, int]]:
        """Compute the position changes for moving one task within a view.

        The view is a filtered, position-sorted subset of the store. The moved
        sequence is written back into the slots the view occupies in the global
        order, and the whole list is then renumbered 0..n-1, so positions stay
        global and dense whatever filter is active.

        Args:
            view: The currently visible tasks, in display order
            source_index: Index in the view of the task being moved
            destination_index: Index in the view where it should land

        Returns:
            (task id, new position) pairs for every task whose position changes

        Raises:
            RangeError: If an index is outside the view or the indices are equal
        """
        size = len(view)
        if not (0 <= source_index < size) or not (0 <= destination_index < size):
            raise RangeError(f"Reorder indices ({source_index}, {destination_index}) outside view of {size}")
        if source_index == destination_index:
            raise RangeError("Source and destination indices are equal")

        moved = [task.id for task in view]
        moved.insert(destination_index, moved.pop(source_index))

        visible = set(moved)
        ordered = [t.id for t in sorted(self._tasks, key=lambda t: t.sort_order)]
        replacements = iter(moved)
        merged = [next(replacements) if task_id in visible else task_id for task_id in ordered]

        changes = []
        for position, task_id in enumerate(merged):
            if self.require(task_id).sort_order != position:
                changes.append((task_id, position))
        return changes

    def apply_positions(self, changes: Iterable[Tuple[int, int]]) -> None:
        for task_id, position in changes:
            self.require(task_id).sort_order = position

    def reorder_task(self, view: Sequence[Task], source_index: int, destination_index: int) -> List[Tuple[int, int]]:
        changes = self.plan_reorder(view, source_index, destination_index)
        self.apply_positions(changes)
        return changes
