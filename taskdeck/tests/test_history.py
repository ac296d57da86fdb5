"""Unit tests for the HistoryLog."""

from taskdeck.models import ToggleEntry
from taskdeck.services.history import MAX_HISTORY_SIZE, HistoryLog


def toggle(task_id):
    return ToggleEntry(task_id=task_id, previous=False, new=True)


def test_empty_log():
    log = HistoryLog()
    assert log.cursor == -1
    assert not log.can_undo
    assert not log.can_redo
    assert log.peek_undo() is None
    assert log.peek_redo() is None


def test_peek_does_not_move_cursor():
    log = HistoryLog()
    log.record(toggle(1))

    assert log.peek_undo().task_id == 1
    assert log.cursor == 0
    log.commit_undo()
    assert log.cursor == -1
    assert log.peek_redo().task_id == 1


def test_record_after_undo_discards_redo_branch():
    log = HistoryLog()
    log.record(toggle(1))
    log.record(toggle(2))
    log.commit_undo()

    log.record(toggle(3))

    assert [e.task_id for e in log.entries] == [1, 3]
    assert not log.can_redo


def test_eviction_after_limit():
    """51 recorded operations on a log of 50 drop the first one."""
    log = HistoryLog()
    for task_id in range(1, 52):
        log.record(toggle(task_id))

    assert len(log) == MAX_HISTORY_SIZE
    assert log.cursor == MAX_HISTORY_SIZE - 1
    assert log.entries[0].task_id == 2

    undone = []
    while log.can_undo:
        undone.append(log.peek_undo().task_id)
        log.commit_undo()
    assert 1 not in undone
    assert len(undone) == 50


def test_clear():
    log = HistoryLog(max_size=3)
    log.record(toggle(1))
    log.clear()
    assert len(log) == 0
    assert log.cursor == -1
