"""
Tests for NestConversionEngine.
"""

import pytest

from stickies.models import Subtask
from stickies.services.errors import NestValidationError, ValidationError
from stickies.services.nest_conversion import NestConversionEngine, NestOp
from stickies.services.ordered_collection import OrderedTaskCollection
from stickies.store import MarkDeleted, SubtasksUpdate

from tests.helpers import titles


@pytest.fixture
def engine():
    counter = iter(range(1000))
    return NestConversionEngine(id_factory=lambda: f"st_{next(counter)}")


@pytest.fixture
def collection(three_tasks):
    collection = OrderedTaskCollection()
    collection.load_snapshot(three_tasks)
    return collection


class TestValidation:

    def test_self_nest_rejected(self, engine, three_tasks):
        t1 = three_tasks[0]
        with pytest.raises(NestValidationError):
            engine.convert(t1, t1)
        assert t1.is_deleted is False
        assert t1.subtasks == []

    def test_completed_target_rejected(self, engine, make_task):
        dragged = make_task("A")
        target = make_task("B", completed=True)

        with pytest.raises(ValidationError):
            engine.convert(dragged, target)

        assert dragged.is_deleted is False
        assert target.subtasks == []

    def test_deleted_task_rejected(self, engine, make_task):
        with pytest.raises(NestValidationError):
            engine.convert(make_task("A", is_deleted=True), make_task("B"))
        with pytest.raises(NestValidationError):
            engine.convert(make_task("A"), make_task("B", is_deleted=True))

    def test_completed_dragged_task_rejected(self, engine, make_task):
        dragged = make_task("A", completed=True)
        target = make_task("B")

        with pytest.raises(NestValidationError, match="cannot be nested"):
            engine.build(dragged, target)

        assert dragged.is_deleted is False
        assert target.subtasks == []


class TestConvert:

    def test_convert_with_collection(self, engine, collection, three_tasks):
        t1, t2, _ = three_tasks

        op = engine.convert(t2, t1, collection)

        assert t2.is_deleted is True
        assert t2.id not in collection
        assert titles(collection.tasks) == ["T1", "T3"]
        assert len(t1.subtasks) == 1
        assert t1.subtasks[0] == Subtask(id="st_0", title="T2", completed=False)
        assert op.subtask.id == "st_0"

    def test_convert_without_collection(self, engine, make_task):
        dragged, target = make_task("A"), make_task("B", subtasks=["existing"])

        engine.convert(dragged, target)

        assert dragged.is_deleted is True
        assert [s.title for s in target.subtasks] == ["existing", "A"]

    def test_subtask_does_not_inherit_dragged_subtasks(self, engine, make_task):
        dragged = make_task("A", subtasks=["a1", "a2"])
        target = make_task("B")

        op = engine.build(dragged, target)

        assert [s.title for s in op.subtasks] == ["A"]

    def test_build_does_not_mutate(self, engine, make_task):
        dragged, target = make_task("A"), make_task("B", subtasks=["existing"])

        engine.build(dragged, target)

        assert dragged.is_deleted is False
        assert [s.title for s in target.subtasks] == ["existing"]

    def test_writes_are_one_batch_of_two(self, engine, make_task):
        dragged, target = make_task("A"), make_task("B")

        op = engine.build(dragged, target)
        writes = op.writes()

        assert isinstance(op, NestOp)
        assert writes == [
            SubtasksUpdate(task_id=target.id, subtasks=op.subtasks),
            MarkDeleted(task_id=dragged.id),
        ]

    def test_default_ids_are_fresh(self, make_task):
        engine = NestConversionEngine()
        target = make_task("B")

        first = engine.build(make_task("A"), target).subtask.id
        second = engine.build(make_task("C"), target).subtask.id

        assert first != second
        assert first.startswith("st_")

    def test_applying_built_op_matches_its_writes(self, engine, collection, three_tasks):
        t1, t2, _ = three_tasks
        op = engine.build(t2, t1)

        op.apply(collection)

        target = collection.get(t1.id)
        assert tuple(target.subtasks) == op.subtasks
        assert target.subtasks[-1].id == op.subtask.id
        assert t2.id not in collection
        assert titles(collection.tasks) == ["T1", "T3"]
