"""Unit tests for view projection and stats."""

from taskdeck.models import Task
from taskdeck.services.projection import TaskFilter, compute_stats, project


def make_tasks():
    return [
        Task(id=1, text="Write", sort_order=2, category="work"),
        Task(id=2, text="Run", sort_order=0, completed=True, category="personal"),
        Task(id=3, text="Ship", sort_order=1, priority="high", category="work"),
    ]


def ids(tasks):
    return [t.id for t in tasks]


def test_all_sorted_by_position():
    assert ids(project(make_tasks())) == [2, 3, 1]
    assert ids(project(make_tasks(), TaskFilter.ALL)) == [2, 3, 1]


def test_status_filters():
    assert ids(project(make_tasks(), "active")) == [3, 1]
    assert ids(project(make_tasks(), "completed")) == [2]
    assert ids(project(make_tasks(), "high")) == [3]


def test_other_values_match_category():
    assert ids(project(make_tasks(), "work")) == [3, 1]
    assert project(make_tasks(), "nothing-here") == []


def test_project_does_not_mutate_input():
    tasks = make_tasks()
    project(tasks, "active")
    assert ids(tasks) == [1, 2, 3]


def test_stats():
    stats = compute_stats(make_tasks())
    assert (stats.total, stats.completed, stats.pending) == (3, 1, 2)
