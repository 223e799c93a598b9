"""
Tests for the TodayBoard service.

Runs against the in-memory FakeStore; a few integration tests at the bottom
use SqlAlchemyStore on an in-memory database.
"""

import asyncio
from datetime import date

import pytest
import pytest_asyncio

from stickies.config import Config
from stickies.models import ModeFilter, TaskMode
from stickies.services.board import CommitOutcome, TodayBoard
from stickies.services.errors import NestValidationError, ValidationError
from stickies.services.nest_conversion import NestConversionEngine
from stickies.store import InsertTask

from tests.helpers import OWNER_ID, TODAY, FakeStore, assert_dense, titles


def _board(store, **kwargs) -> TodayBoard:
    counter = iter(range(1000))
    kwargs.setdefault("engine", NestConversionEngine(id_factory=lambda: f"st_{next(counter)}"))
    kwargs.setdefault("clock", lambda: TODAY)
    return TodayBoard(store, owner_id=OWNER_ID, **kwargs)


@pytest_asyncio.fixture
async def board(fake_store):
    board = _board(fake_store)
    await board.load()
    return board


class TestLoad:

    @pytest.mark.asyncio
    async def test_load(self, board):
        assert titles(board.tasks) == ["T1", "T2", "T3"]

    @pytest.mark.asyncio
    async def test_today_only_filters_by_start_date(self, make_task):
        store = FakeStore([make_task("today"), make_task("tomorrow", start_date=date(2025, 1, 15))])
        board = _board(store, today_only=True)

        await board.load()

        assert titles(board.tasks) == ["today"]

    @pytest.mark.asyncio
    async def test_from_config(self, fake_store, tmp_path, monkeypatch):
        for name in ('STICKIES_OWNER_ID', 'STICKIES_MODE_FILTER', 'STICKIES_TODAY_ONLY'):
            monkeypatch.delenv(name, raising=False)
        path = tmp_path / "config.ini"
        path.write_text(f"[board]\nowner_id = {OWNER_ID}\nmode_filter = professional\n")

        board = TodayBoard.from_config(fake_store, Config(path))
        await board.load()

        assert board.owner_id == OWNER_ID
        assert board.mode_filter is ModeFilter.PROFESSIONAL
        assert board.tasks == []


class TestReorder:

    @pytest.mark.asyncio
    async def test_reorder_commits_every_position(self, board, fake_store, three_tasks):
        t1, t2, t3 = three_tasks

        assert await board.reorder(t3.id, t1.id) is True

        assert titles(board.incomplete) == ["T3", "T1", "T2"]
        assert_dense(board.incomplete)
        assert len(fake_store.batches) == 1
        assert {op.task_id: op.position for op in fake_store.batches[0]} == {
            t3.id: 0, t1.id: 1, t2.id: 2,
        }

    @pytest.mark.asyncio
    async def test_reorder_onto_self_writes_nothing(self, board, fake_store, three_tasks):
        assert await board.reorder(three_tasks[0].id, three_tasks[0].id) is False
        assert fake_store.batches == []
        assert board.last_outcome is CommitOutcome.UNCHANGED

    @pytest.mark.asyncio
    async def test_reorder_stale_id_is_noop(self, board, fake_store, make_task, three_tasks):
        assert await board.reorder(make_task("ghost").id, three_tasks[0].id) is False
        assert fake_store.batches == []

    @pytest.mark.asyncio
    async def test_failed_reorder_reloads(self, board, fake_store, three_tasks):
        fake_store.fail_next_write = True

        assert await board.reorder(three_tasks[2].id, three_tasks[0].id) is False

        assert titles(board.incomplete) == ["T1", "T2", "T3"]
        assert board.last_outcome is CommitOutcome.RECONCILED

    @pytest.mark.asyncio
    async def test_reorder_rejected_while_commit_in_flight(self, board, fake_store, three_tasks):
        t1, t2, t3 = three_tasks
        fake_store.write_gate = asyncio.Event()
        first = asyncio.create_task(board.reorder(t3.id, t1.id))
        await asyncio.sleep(0)

        assert await board.reorder(t2.id, t1.id) is False
        assert board.last_outcome is CommitOutcome.REJECTED

        fake_store.write_gate.set()
        assert await first is True
        assert board.last_outcome is CommitOutcome.SAVED
        assert titles(board.incomplete) == ["T3", "T1", "T2"]
        assert len(fake_store.batches) == 1

    @pytest.mark.asyncio
    async def test_drag_through_controller(self, board, fake_store, three_tasks):
        t1, _, t3 = three_tasks

        board.controller.start(t3.id)
        board.controller.over(str(t1.id))
        assert titles(board.display_order()) == ["T3", "T1", "T2"]
        assert fake_store.batches == []

        action = await board.controller.drop()

        assert action.saved is True
        assert titles(board.incomplete) == ["T3", "T1", "T2"]
        assert fake_store.doc(t3.id).position == 0


    @pytest.mark.asyncio
    async def test_failed_drop_through_controller_is_reported(self, board, fake_store, three_tasks):
        t1, _, t3 = three_tasks
        fake_store.fail_next_write = True

        board.controller.start(t3.id)
        board.controller.over(str(t1.id))
        action = await board.controller.drop()

        assert action.saved is False
        assert board.last_outcome is CommitOutcome.RECONCILED
        assert titles(board.incomplete) == ["T1", "T2", "T3"]


class TestNest:

    @pytest.mark.asyncio
    async def test_nest(self, board, fake_store, three_tasks):
        t1, t2, _ = three_tasks

        assert await board.nest(t2.id, t1.id) is True

        assert titles(board.tasks) == ["T1", "T3"]
        target = board.collection.get(t1.id)
        assert [s.title for s in target.subtasks] == ["T2"]
        assert board.is_expanded(t1.id)
        assert fake_store.doc(t2.id).is_deleted is True
        assert [s.id for s in fake_store.doc(t1.id).subtasks] == ["st_0"]
        assert len(fake_store.batches) == 1

    @pytest.mark.asyncio
    async def test_nest_into_completed_target_raises(self, board, fake_store, three_tasks):
        t1, t2, _ = three_tasks
        await board.toggle_complete(t1.id)
        batches = len(fake_store.batches)

        with pytest.raises(NestValidationError):
            await board.nest(t2.id, t1.id)

        assert titles(board.incomplete) == ["T2", "T3"]
        assert len(fake_store.batches) == batches

    @pytest.mark.asyncio
    async def test_nest_completed_task_raises(self, board, fake_store, three_tasks):
        t1, t2, _ = three_tasks
        await board.toggle_complete(t2.id)
        batches = len(fake_store.batches)

        with pytest.raises(NestValidationError):
            await board.nest(t2.id, t1.id)

        assert titles(board.completed) == ["T2"]
        assert board.collection.get(t1.id).subtasks == []
        assert len(fake_store.batches) == batches

    @pytest.mark.asyncio
    async def test_nest_into_self_raises(self, board, three_tasks):
        with pytest.raises(NestValidationError):
            await board.nest(three_tasks[0].id, three_tasks[0].id)

    @pytest.mark.asyncio
    async def test_nested_task_stays_gone_after_reload(self, board, three_tasks):
        t1, t2, _ = three_tasks
        await board.nest(t2.id, t1.id)

        await board.reload()

        assert titles(board.tasks) == ["T1", "T3"]

    @pytest.mark.asyncio
    async def test_failed_nest_restores_both_tasks(self, board, fake_store, three_tasks):
        t1, t2, _ = three_tasks
        fake_store.fail_next_write = True

        assert await board.nest(t2.id, t1.id) is False

        assert titles(board.tasks) == ["T1", "T2", "T3"]
        assert board.collection.get(t1.id).subtasks == []
        assert fake_store.doc(t2.id).is_deleted is False


class TestTaskEdits:

    @pytest.mark.asyncio
    async def test_complete_moves_task_after_incomplete(self, board, fake_store, three_tasks):
        t1 = three_tasks[0]

        assert await board.toggle_complete(t1.id) is True

        assert titles(board.incomplete) == ["T2", "T3"]
        assert titles(board.completed) == ["T1"]
        assert fake_store.doc(t1.id).completed is True
        assert fake_store.doc(t1.id).completed_at is not None

    @pytest.mark.asyncio
    async def test_reopened_task_joins_end(self, board, fake_store, three_tasks):
        t1 = three_tasks[0]
        await board.toggle_complete(t1.id)

        await board.toggle_complete(t1.id)

        assert titles(board.incomplete) == ["T2", "T3", "T1"]
        assert fake_store.doc(t1.id).position == 3
        assert fake_store.doc(t1.id).completed_at is None

    @pytest.mark.asyncio
    async def test_toggle_subtask(self, make_task):
        task = make_task("parent", subtasks=["a", "b"])
        store = FakeStore([task])
        board = _board(store)
        await board.load()
        subtask_id = task.subtasks[1].id

        assert await board.toggle_subtask(task.id, subtask_id) is True

        assert [s.completed for s in store.doc(task.id).subtasks] == [False, True]
        assert board.collection.get(task.id).progress_string == "1/2"

    @pytest.mark.asyncio
    async def test_toggle_unknown_subtask_is_noop(self, board, fake_store, three_tasks):
        assert await board.toggle_subtask(three_tasks[0].id, "st_missing") is False
        assert fake_store.batches == []

    @pytest.mark.asyncio
    async def test_add_task_goes_to_end(self, board, fake_store):
        assert await board.add_task("  T4  ", description="notes", subtasks=["x", " "]) is True

        assert titles(board.incomplete) == ["T1", "T2", "T3", "T4"]
        created = board.incomplete[-1]
        assert created.position == 3
        assert created.start_date == TODAY
        assert created.mode is TaskMode.PERSONAL
        assert [s.title for s in created.subtasks] == ["x"]
        assert fake_store.doc(created.id).description == "notes"

    @pytest.mark.asyncio
    async def test_add_task_uses_active_filter_mode(self, board):
        board.set_mode_filter(ModeFilter.PROFESSIONAL)

        await board.add_task("Report")

        assert titles(board.tasks) == ["Report"]
        assert board.tasks[0].mode is TaskMode.PROFESSIONAL

    @pytest.mark.asyncio
    async def test_add_task_empty_title_raises(self, board, fake_store):
        with pytest.raises(ValidationError):
            await board.add_task("   ")
        assert fake_store.batches == []

    @pytest.mark.asyncio
    async def test_add_subtask_expands(self, board, fake_store, three_tasks):
        t1 = three_tasks[0]

        assert await board.add_subtask(t1.id, "Step one") is True

        assert board.is_expanded(t1.id)
        assert [s.title for s in fake_store.doc(t1.id).subtasks] == ["Step one"]

    @pytest.mark.asyncio
    async def test_add_subtask_empty_title_raises(self, board, three_tasks):
        with pytest.raises(ValidationError):
            await board.add_subtask(three_tasks[0].id, "")


class TestBulkEdits:

    @pytest.mark.asyncio
    async def test_bulk_complete_is_one_batch(self, board, fake_store, three_tasks):
        t1, t2, _ = three_tasks

        assert await board.bulk_complete([t1.id, t2.id, t1.id]) is True

        assert titles(board.incomplete) == ["T3"]
        assert len(fake_store.batches) == 1
        assert len(fake_store.batches[0]) == 2
        stamps = {fake_store.doc(t1.id).completed_at, fake_store.doc(t2.id).completed_at}
        assert len(stamps) == 1
        assert None not in stamps

    @pytest.mark.asyncio
    async def test_bulk_complete_nothing_to_do(self, board, fake_store, make_task):
        assert await board.bulk_complete([make_task("ghost").id]) is False
        assert fake_store.batches == []

    @pytest.mark.asyncio
    async def test_bulk_set_mode(self, board, fake_store, three_tasks):
        t1, t2, _ = three_tasks
        board.set_mode_filter(ModeFilter.PERSONAL)

        assert await board.bulk_set_mode([t1.id, t2.id], "professional") is True

        assert titles(board.tasks) == ["T3"]
        assert fake_store.doc(t1.id).mode is TaskMode.PROFESSIONAL

        board.set_mode_filter(ModeFilter.PROFESSIONAL)
        assert titles(board.tasks) == ["T1", "T2"]

    @pytest.mark.asyncio
    async def test_bulk_move_to_date(self, fake_store, three_tasks):
        board = _board(fake_store, today_only=True)
        await board.load()
        tomorrow = date(2025, 1, 15)

        assert await board.bulk_move_to_date([three_tasks[0].id], tomorrow) is True

        assert titles(board.tasks) == ["T2", "T3"]
        assert fake_store.doc(three_tasks[0].id).start_date == tomorrow

    @pytest.mark.asyncio
    async def test_failed_bulk_edit_reloads(self, board, fake_store, three_tasks):
        fake_store.fail_next_write = True

        assert await board.bulk_complete([t.id for t in three_tasks]) is False

        assert titles(board.incomplete) == ["T1", "T2", "T3"]


class TestViewState:

    @pytest.mark.asyncio
    async def test_mode_filter_round_trip(self, make_task):
        store = FakeStore([
            make_task("home", position=0),
            make_task("work", position=1, mode=TaskMode.PROFESSIONAL),
        ])
        board = _board(store)
        await board.load()

        board.set_mode_filter("personal")
        assert titles(board.tasks) == ["home"]

        assert board.cycle_mode_filter() is ModeFilter.PROFESSIONAL
        assert titles(board.tasks) == ["work"]

        board.set_mode_filter(ModeFilter.ALL)
        assert titles(board.tasks) == ["home", "work"]
        assert store.load_calls == 1

    @pytest.mark.asyncio
    async def test_toggle_expanded(self, board, three_tasks):
        t1 = three_tasks[0]
        assert board.toggle_expanded(t1.id) is True
        assert board.is_expanded(t1.id)
        assert board.toggle_expanded(t1.id) is False
        assert not board.is_expanded(t1.id)

    @pytest.mark.asyncio
    async def test_stats(self, make_task):
        store = FakeStore([
            make_task("a", subtasks=["x", "y"]),
            make_task("b", completed=True),
        ])
        board = _board(store)
        await board.load()
        await board.toggle_subtask(board.incomplete[0].id, board.incomplete[0].subtasks[0].id)

        stats = board.stats()

        assert stats.total == 2
        assert stats.completed == 1
        assert stats.incomplete == 1
        assert stats.subtasks == 2
        assert stats.completed_subtasks == 1
        assert stats.progress_string == "1/2"


class TestWithDatabase:

    @pytest.mark.asyncio
    async def test_reorder_and_nest_persist(self, sql_store, three_tasks):
        await sql_store.atomic_write([InsertTask(t) for t in three_tasks])
        t1, t2, t3 = three_tasks
        board = _board(sql_store)
        await board.load()

        await board.reorder(t3.id, t1.id)
        await board.nest(t2.id, t3.id)

        fresh = _board(sql_store)
        await fresh.load()
        assert titles(fresh.incomplete) == ["T3", "T1"]
        assert [s.title for s in fresh.collection.get(t3.id).subtasks] == ["T2"]

    @pytest.mark.asyncio
    async def test_add_task_persists(self, sql_store):
        board = _board(sql_store)
        await board.load()

        await board.add_task("First")
        await board.add_task("Second")

        fresh = _board(sql_store)
        await fresh.load()
        assert titles(fresh.incomplete) == ["First", "Second"]
        assert_dense(fresh.incomplete)
