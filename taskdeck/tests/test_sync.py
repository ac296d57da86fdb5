"""Tests for the RemoteReconciler against an in-memory SQL remote."""

import threading
from datetime import datetime

import pytest

from taskdeck.auth.base import AuthSession
from taskdeck.auth.local import LocalAuth
from taskdeck.config import Settings
from taskdeck.db.session import create_db_and_tables, make_engine
from taskdeck.errors import RemoteFailure
from taskdeck.models import Task
from taskdeck.remote.base import CATEGORIES_TABLE, TASKS_TABLE
from taskdeck.remote.sql import SqlRemote
from taskdeck.services.sync import RemoteReconciler
from taskdeck.services.workspace import Workspace

OWNER = "user-1"


class FlakyRemote(SqlRemote):
    """SqlRemote whose calls can be made to fail on demand."""

    def __init__(self, engine):
        super().__init__(engine)
        self.failing = set()
        self.updates_before_failure = None

    def _check(self, operation):
        if operation in self.failing:
            raise RemoteFailure("connection reset", operation=operation)

    async def insert(self, table, row):
        self._check("insert")
        return await super().insert(table, row)

    async def select(self, table, owner_id, order_by="created_at", columns=None):
        self._check("select")
        return await super().select(table, owner_id, order_by=order_by, columns=columns)

    async def update(self, table, row_id, owner_id, values):
        self._check("update")
        if self.updates_before_failure is not None:
            if self.updates_before_failure == 0:
                raise RemoteFailure("timed out", operation="update")
            self.updates_before_failure -= 1
        return await super().update(table, row_id, owner_id, values)

    async def update_where(self, table, owner_id, match, values):
        self._check("update_where")
        return await super().update_where(table, owner_id, match, values)

    async def delete(self, table, row_id, owner_id):
        self._check("delete")
        return await super().delete(table, row_id, owner_id)


@pytest.fixture
def remote():
    engine = make_engine("sqlite://")
    create_db_and_tables(engine)
    return FlakyRemote(engine)


@pytest.fixture
def reconciler(remote):
    return RemoteReconciler(OWNER, remote)


async def remote_tasks(remote):
    return await remote.select(TASKS_TABLE, OWNER, order_by="sort_order")


class TestSqlRemote:
    """Tests for the SQL adapter itself."""

    @pytest.mark.asyncio
    async def test_task_row_round_trip(self, remote):
        task = Task(id=1, text="Draft report", scheduled_for="2025-03-01", sort_order=0)

        row = await remote.insert(TASKS_TABLE, task.to_row(OWNER))
        updated = await remote.update(
            TASKS_TABLE, row["id"], OWNER, {"completed": True, "scheduled_for": datetime(2025, 3, 2, 14, 30)}
        )
        loaded = Task.from_row((await remote_tasks(remote))[0], 1, "general")

        assert loaded.text == "Draft report"
        assert loaded.completed is True
        assert (loaded.scheduled_for.day, loaded.scheduled_for.hour) == (2, 14)
        assert row["scheduled_for"].hour == 9
        assert updated["updated_at"] is not None

    @pytest.mark.asyncio
    async def test_session_work_runs_off_the_event_loop(self, remote):
        threads = []
        select_rows = remote._select

        def recording_select(*args):
            threads.append(threading.get_ident())
            return select_rows(*args)

        remote._select = recording_select
        await remote.select(TASKS_TABLE, OWNER)

        assert len(threads) == 1
        assert threads[0] != threading.get_ident()


class TestLoad:
    """Tests for load/resync."""

    @pytest.mark.asyncio
    async def test_load_seeds_default_category_once(self, reconciler, remote):
        assert await reconciler.load()
        assert await reconciler.load()

        rows = await remote.select(CATEGORIES_TABLE, OWNER)
        assert [row["name"] for row in rows] == ["General"]
        assert reconciler.categories.default_id == rows[0]["id"]

    @pytest.mark.asyncio
    async def test_load_failure_produces_notice(self, reconciler, remote):
        remote.failing.add("select")

        assert await reconciler.load() is False
        assert reconciler.notices[-1].level == "error"

    @pytest.mark.asyncio
    async def test_resync_keeps_local_ids(self, reconciler):
        await reconciler.load()
        first = await reconciler.add_task(text="A")
        second = await reconciler.add_task(text="B")

        await reconciler.resync()

        assert reconciler.store.get(first.id).remote_id == first.remote_id
        assert reconciler.store.get(second.id).text == "B"

    @pytest.mark.asyncio
    async def test_rows_of_other_owners_are_invisible(self, reconciler, remote):
        await reconciler.load()
        await reconciler.add_task(text="Mine")
        other = RemoteReconciler("user-2", remote)
        await other.load()

        assert len(other.store) == 0


class TestTaskIntents:
    """Tests for task mutations mirrored to the remote."""

    @pytest.mark.asyncio
    async def test_add_persists_row(self, reconciler, remote):
        await reconciler.load()
        task = await reconciler.add_task(text="Draft report", priority="high", scheduled_for="2025-03-01")

        rows = await remote_tasks(remote)
        assert len(rows) == 1
        assert rows[0]["id"] == task.remote_id
        assert rows[0]["priority"] == "high"
        assert rows[0]["category_id"] == reconciler.categories.default_id
        assert rows[0]["scheduled_for"].hour == 9

    @pytest.mark.asyncio
    async def test_add_failure_leaves_state_untouched(self, reconciler, remote):
        await reconciler.load()
        remote.failing.add("insert")

        assert await reconciler.add_task(text="A") is None
        assert len(reconciler.store) == 0
        assert not reconciler.can_undo
        assert reconciler.notices[-1].operation == "add task"

    @pytest.mark.asyncio
    async def test_edit_and_toggle_update_row(self, reconciler, remote):
        await reconciler.load()
        task = await reconciler.add_task(text="A")

        await reconciler.edit_task(task.id, {"text": "A2", "estimated_hours": 2})
        await reconciler.toggle_task(task.id)

        row = (await remote_tasks(remote))[0]
        assert row["text"] == "A2"
        assert row["estimated_hours"] == 2
        assert row["completed"] is True

    @pytest.mark.asyncio
    async def test_toggle_failure_keeps_local_state(self, reconciler, remote):
        await reconciler.load()
        task = await reconciler.add_task(text="A")
        remote.failing.add("update")

        assert await reconciler.toggle_task(task.id) is None
        assert reconciler.store.get(task.id).completed is False

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, reconciler, remote):
        await reconciler.load()
        task = await reconciler.add_task(text="A")

        await reconciler.delete_task(task.id)

        assert await remote_tasks(remote) == []


class TestReorder:
    """Tests for reorder persistence."""

    @pytest.mark.asyncio
    async def test_reorder_persists_positions(self, reconciler, remote):
        await reconciler.load()
        for text in ("A", "B", "C"):
            await reconciler.add_task(text=text)

        assert await reconciler.reorder_task(0, 2)

        rows = await remote_tasks(remote)
        assert [row["text"] for row in rows] == ["B", "C", "A"]
        assert [row["sort_order"] for row in rows] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_partial_failure_reloads_from_remote(self, reconciler, remote):
        """A failure mid-sequence leaves local state equal to what the remote holds."""
        await reconciler.load()
        for text in ("A", "B", "C"):
            await reconciler.add_task(text=text)
        remote.updates_before_failure = 1

        assert await reconciler.reorder_task(0, 2) is False

        rows = await remote_tasks(remote)
        expected = {row["id"]: row["sort_order"] for row in rows}
        actual = {task.remote_id: task.sort_order for task in reconciler.store.tasks}
        assert actual == expected
        assert reconciler.notices[-1].operation == "reorder tasks"


class TestCategories:
    """Tests for category persistence and counts."""

    @pytest.mark.asyncio
    async def test_add_category_uses_remote_key(self, reconciler, remote):
        await reconciler.load()

        category = await reconciler.add_category("Work", "#3B82F6")
        task = await reconciler.add_task(text="Draft report", category=category.id)

        rows = await remote.select(CATEGORIES_TABLE, OWNER)
        assert category.id == rows[-1]["id"]
        assert reconciler.categories.get(category.id).count == 1
        reconciler.set_filter(category.id)
        assert reconciler.view() == [task]

    @pytest.mark.asyncio
    async def test_delete_with_reassignment(self, reconciler, remote):
        await reconciler.load()
        category = await reconciler.add_category("Work", "#3B82F6")
        await reconciler.add_task(text="A", category=category.id)
        await reconciler.add_task(text="B", category=category.id)

        result = await reconciler.delete_category(category.id, reassign_to_default=True)

        assert result.ok
        assert result.reassigned == 2
        rows = await remote_tasks(remote)
        assert {row["category_id"] for row in rows} == {reconciler.categories.default_id}
        assert [row["name"] for row in await remote.select(CATEGORIES_TABLE, OWNER)] == ["General"]
        assert reconciler.categories.default.count == 2

    @pytest.mark.asyncio
    async def test_delete_failure_reloads(self, reconciler, remote):
        await reconciler.load()
        category = await reconciler.add_category("Work", "#3B82F6")
        await reconciler.add_task(text="A", category=category.id)
        remote.failing.add("delete")

        result = await reconciler.delete_category(category.id, reassign_to_default=True)

        assert not result.ok
        assert isinstance(result.failure, RemoteFailure)
        # The bulk reassignment went through before the delete failed
        assert reconciler.categories.get(category.id) is not None
        assert reconciler.store.tasks[0].category == reconciler.categories.default_id

    @pytest.mark.asyncio
    async def test_counts_come_from_remote_rows(self, reconciler, remote):
        await reconciler.load()
        # Written by another client
        await remote.insert(TASKS_TABLE, {
            "text": "Elsewhere",
            "user_id": OWNER,
            "category_id": reconciler.categories.default_id,
            "sort_order": 0,
        })

        await reconciler.add_task(text="Here")

        assert reconciler.categories.default.count == 2
        assert len(reconciler.store) == 1

    @pytest.mark.asyncio
    async def test_counts_fall_back_to_local(self, reconciler, remote):
        await reconciler.load()
        await remote.insert(TASKS_TABLE, {
            "text": "Elsewhere",
            "user_id": OWNER,
            "category_id": reconciler.categories.default_id,
            "sort_order": 0,
        })
        remote.failing.add("select")

        await reconciler.add_task(text="Here")

        assert reconciler.categories.default.count == 1


class TestHistory:
    """Tests for undo/redo replayed against the remote."""

    @pytest.mark.asyncio
    async def test_undo_redo_add(self, reconciler, remote):
        await reconciler.load()
        task = await reconciler.add_task(text="A")

        assert await reconciler.undo()
        assert await remote_tasks(remote) == []

        assert await reconciler.redo()
        rows = await remote_tasks(remote)
        restored = reconciler.store.get(task.id)
        assert len(rows) == 1
        assert restored.remote_id == rows[0]["id"]
        assert restored.text == "A"

    @pytest.mark.asyncio
    async def test_failed_undo_keeps_cursor(self, reconciler, remote):
        await reconciler.load()
        await reconciler.add_task(text="A")
        remote.failing.add("delete")

        assert await reconciler.undo() is False
        assert reconciler.history.cursor == 0
        assert reconciler.can_undo
        assert len(reconciler.store) == 1
        assert reconciler.notices[-1].operation == "undo"

    @pytest.mark.asyncio
    async def test_undo_edit_restores_remote_row(self, reconciler, remote):
        await reconciler.load()
        task = await reconciler.add_task(text="A", description="first")
        await reconciler.edit_task(task.id, {"description": "second"})

        await reconciler.undo()

        assert (await remote_tasks(remote))[0]["description"] == "first"

    @pytest.mark.asyncio
    async def test_undo_after_failed_position_writes(self, reconciler, remote):
        """A second undo finishes the first one instead of inserting a duplicate."""
        await reconciler.load()
        for text in ("A", "B", "C"):
            await reconciler.add_task(text=text)
        await reconciler.delete_task(1)
        await reconciler.reorder_task(0, 1)
        cursor = reconciler.history.cursor
        remote.updates_before_failure = 0

        assert await reconciler.undo() is False
        assert reconciler.history.cursor == cursor

        remote.updates_before_failure = None
        assert await reconciler.undo()

        rows = await remote_tasks(remote)
        assert sorted(t.id for t in reconciler.store.tasks) == [1, 2, 3]
        assert [row["text"] for row in rows] == ["A", "C", "B"]
        assert [row["sort_order"] for row in rows] == [0, 1, 2]
        assert reconciler.history.cursor == cursor - 1


class TestWorkspaceLoad:
    """Tests for opening a user's workspace on the sql backend."""

    @pytest.mark.asyncio
    async def test_failed_load_is_retried(self, remote):
        workspace = Workspace(Settings(backend="sql"), LocalAuth(remote.engine, "secret"), lambda session: remote)
        session = AuthSession(user_id=OWNER, email="a@b.co", access_token="t")
        await remote.insert(TASKS_TABLE, {"text": "Existing", "user_id": OWNER, "sort_order": 0})
        remote.failing.add("select")

        with pytest.raises(RemoteFailure):
            await workspace.reconciler_for(session)

        remote.failing.clear()
        reconciler = await workspace.reconciler_for(session)
        assert [t.text for t in reconciler.view()] == ["Existing"]

        task = await reconciler.add_task(text="New")
        assert task.sort_order == 1
        assert task.category == reconciler.categories.default_id
        assert task.category != "general"
        await workspace.close()
