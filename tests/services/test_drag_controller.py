"""
Tests for the drag gesture state machine.
"""

from uuid import uuid4

import pytest

from stickies.services.drag_controller import (
    DragReorderController,
    DragState,
    DropKind,
    HoverKind,
    HoverTarget,
    nest_zone_id,
)
from stickies.services.errors import DragStateError
from stickies.services.ordered_collection import OrderedTaskCollection

from tests.helpers import titles


class RecordingDispatcher:
    """Records dispatched drops."""

    def __init__(self):
        self.calls = []

    async def reorder(self, active_id, over_id):
        self.calls.append(("reorder", active_id, over_id))
        return True

    async def nest(self, dragged_id, target_id):
        self.calls.append(("nest", dragged_id, target_id))
        return True


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def controller(dispatcher):
    return DragReorderController(dispatcher=dispatcher)


class TestHoverTarget:

    def test_sibling(self):
        task_id = uuid4()
        assert HoverTarget.parse(str(task_id)) == HoverTarget(HoverKind.SIBLING, task_id)

    def test_nest_zone(self):
        task_id = uuid4()
        assert HoverTarget.parse(nest_zone_id(task_id)) == HoverTarget(HoverKind.NEST_ZONE, task_id)

    def test_nest_zone_id_format(self):
        task_id = uuid4()
        assert nest_zone_id(task_id) == f"nest-{task_id}"

    @pytest.mark.parametrize("raw", [None, "", "nest-", "nest-garbage", "garbage"])
    def test_unparseable_is_none(self, raw):
        assert HoverTarget.parse(raw).kind is HoverKind.NONE


class TestTransitions:

    def test_starts_idle(self, controller):
        assert controller.state is DragState.IDLE
        assert not controller.is_dragging

    def test_start_enters_dragging(self, controller):
        task_id = uuid4()
        controller.start(task_id)

        assert controller.state is DragState.DRAGGING
        assert controller.active_id == task_id

    def test_over_enters_hover(self, controller):
        target = uuid4()
        controller.start(uuid4())

        hover = controller.over(str(target))

        assert controller.state is DragState.HOVER
        assert hover.task_id == target

    def test_start_while_dragging_raises(self, controller):
        controller.start(uuid4())
        with pytest.raises(DragStateError):
            controller.start(uuid4())

    def test_over_while_idle_raises(self, controller):
        with pytest.raises(DragStateError):
            controller.over(str(uuid4()))

    def test_cancel_returns_to_idle(self, controller, dispatcher):
        controller.start(uuid4())
        controller.over(str(uuid4()))

        controller.cancel()

        assert controller.state is DragState.IDLE
        assert controller.active_id is None
        assert controller.hover is None
        assert dispatcher.calls == []


class TestDrop:

    @pytest.mark.asyncio
    async def test_drop_on_sibling_dispatches_reorder(self, controller, dispatcher):
        active, over = uuid4(), uuid4()
        controller.start(active)
        controller.over(str(over))

        action = await controller.drop()

        assert action.kind is DropKind.REORDER
        assert dispatcher.calls == [("reorder", active, over)]
        assert action.saved is True
        assert controller.state is DragState.IDLE

    @pytest.mark.asyncio
    async def test_drop_on_nest_zone_dispatches_nest(self, controller, dispatcher):
        active, target = uuid4(), uuid4()
        controller.start(active)
        controller.over(str(target))
        controller.over(nest_zone_id(target))

        action = await controller.drop()

        assert action.kind is DropKind.NEST
        assert dispatcher.calls == [("nest", active, target)]
        assert action.saved is True

    @pytest.mark.asyncio
    async def test_drop_without_hover_is_cancel(self, controller, dispatcher):
        controller.start(uuid4())

        action = await controller.drop()

        assert action.kind is DropKind.CANCEL
        assert dispatcher.calls == []
        assert controller.state is DragState.IDLE
        assert action.saved is False

    @pytest.mark.asyncio
    async def test_drop_over_nothing_is_cancel(self, controller, dispatcher):
        controller.start(uuid4())
        controller.over(str(uuid4()))
        controller.over(None)

        action = await controller.drop()

        assert action.kind is DropKind.CANCEL
        assert dispatcher.calls == []

    @pytest.mark.asyncio
    async def test_drop_while_idle_is_cancel(self, controller, dispatcher):
        action = await controller.drop()
        assert action.kind is DropKind.CANCEL
        assert dispatcher.calls == []

    @pytest.mark.asyncio
    async def test_drop_reports_unsaved_dispatch(self):
        class FailingDispatcher(RecordingDispatcher):
            async def reorder(self, active_id, over_id):
                await super().reorder(active_id, over_id)
                return False

        controller = DragReorderController(dispatcher=FailingDispatcher())
        controller.start(uuid4())
        controller.over(str(uuid4()))

        action = await controller.drop()

        assert action.kind is DropKind.REORDER
        assert action.saved is False

    @pytest.mark.asyncio
    async def test_idle_before_dispatch(self, dispatcher):
        seen_states = []

        class StateCheckingDispatcher(RecordingDispatcher):
            async def reorder(self, active_id, over_id):
                seen_states.append(controller.state)
                return True

        controller = DragReorderController(dispatcher=StateCheckingDispatcher())
        controller.start(uuid4())
        controller.over(str(uuid4()))

        await controller.drop()

        assert seen_states == [DragState.IDLE]

    @pytest.mark.asyncio
    async def test_can_start_again_after_drop(self, controller):
        controller.start(uuid4())
        await controller.drop()
        controller.start(uuid4())
        assert controller.is_dragging


class TestPreview:

    def test_preview_while_hovering_sibling(self, controller, three_tasks):
        collection = OrderedTaskCollection()
        collection.load_snapshot(three_tasks)
        t1, _, t3 = three_tasks

        controller.start(t3.id)
        controller.over(str(t1.id))

        assert titles(controller.preview(collection)) == ["T3", "T1", "T2"]
        assert titles(collection.incomplete) == ["T1", "T2", "T3"]

    def test_preview_over_nest_zone_keeps_order(self, controller, three_tasks):
        collection = OrderedTaskCollection()
        collection.load_snapshot(three_tasks)
        t1, _, t3 = three_tasks

        controller.start(t3.id)
        controller.over(nest_zone_id(t1.id))

        assert titles(controller.preview(collection)) == ["T1", "T2", "T3"]

    def test_preview_with_stale_target_keeps_order(self, controller, three_tasks):
        collection = OrderedTaskCollection()
        collection.load_snapshot(three_tasks)

        controller.start(three_tasks[0].id)
        controller.over(str(uuid4()))

        assert titles(controller.preview(collection)) == ["T1", "T2", "T3"]
