"""View projection: the visible, ordered task list for a filter."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from ..models import Task, TaskPriority


class TaskFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    HIGH_PRIORITY = "high"


@dataclass
class TaskStats:
    total: int
    completed: int
    pending: int


def project(tasks: Iterable[Task], task_filter: str = TaskFilter.ALL.value) -> List[Task]:
    """Filter tasks and sort them by sort position.

    Args:
        tasks: Tasks in any order
        task_filter: 'all', 'active', 'completed', 'high', or a category id.
            Any value that is not a status filter is matched as a category id.

    Returns:
        The matching tasks ordered by `sort_order` ascending
    """
    value = task_filter.value if isinstance(task_filter, TaskFilter) else task_filter
    if value == TaskFilter.ALL.value:
        selected = list(tasks)
    elif value == TaskFilter.ACTIVE.value:
        selected = [t for t in tasks if not t.completed]
    elif value == TaskFilter.COMPLETED.value:
        selected = [t for t in tasks if t.completed]
    elif value == TaskFilter.HIGH_PRIORITY.value:
        selected = [t for t in tasks if t.priority == TaskPriority.HIGH]
    else:
        selected = [t for t in tasks if t.category == value]
    return sorted(selected, key=lambda t: t.sort_order)


def compute_stats(tasks: Iterable[Task]) -> TaskStats:
    tasks = list(tasks)
    completed = sum(1 for t in tasks if t.completed)
    return TaskStats(total=len(tasks), completed=completed, pending=len(tasks) - completed)
