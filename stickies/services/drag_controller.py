"""
Drag gesture state machine for the Stickies board.

States::

    IDLE --start--> DRAGGING --over--> HOVER --over--> HOVER
      ^                 |                 |
      +---drop/cancel---+-----------------+

While hovering, the target is either a sibling task (plain reorder), a nest
zone attached to a task (drop-to-nest), or nothing. Nothing is persisted
until drop; a drop with no valid target is a cancellation.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Protocol
from uuid import UUID

from stickies.logging_config import get_logger
from stickies.models import Task
from stickies.services.errors import DragStateError, TaskNotFoundError
from stickies.services.ordered_collection import OrderedTaskCollection

logger = get_logger(__name__)

NEST_ZONE_PREFIX = "nest-"


def nest_zone_id(task_id: UUID) -> str:
    """Drop-target id of the nest zone attached to ``task_id``."""
    return f"{NEST_ZONE_PREFIX}{task_id}"


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    HOVER = "hover"


class HoverKind(Enum):
    SIBLING = "sibling"
    NEST_ZONE = "nest_zone"
    NONE = "none"


class DropKind(Enum):
    REORDER = "reorder"
    NEST = "nest"
    CANCEL = "cancel"


@dataclass(frozen=True)
class HoverTarget:
    kind: HoverKind
    task_id: Optional[UUID] = None

    @classmethod
    def parse(cls, target_id: Optional[str]) -> "HoverTarget":
        """
        Classify a raw drop-target id.

        Args:
            target_id: ``"<uuid>"`` for a sibling, ``"nest-<uuid>"`` for a
                       nest zone, or None when over nothing

        Returns:
            HoverTarget; unparseable ids are treated as no target
        """
        if target_id is None:
            return cls(HoverKind.NONE)

        kind = HoverKind.SIBLING
        raw = target_id
        if target_id.startswith(NEST_ZONE_PREFIX):
            kind = HoverKind.NEST_ZONE
            raw = target_id[len(NEST_ZONE_PREFIX):]

        try:
            return cls(kind, UUID(raw))
        except ValueError:
            logger.warning(f"Ignoring unknown drop target: {target_id!r}")
            return cls(HoverKind.NONE)


@dataclass(frozen=True)
class DropAction:
    """What a completed gesture resolved to, and whether it was saved."""
    kind: DropKind
    active_id: Optional[UUID] = None
    target_id: Optional[UUID] = None
    saved: bool = False


class DropDispatcher(Protocol):
    """Receiver of resolved drops (the board)."""

    async def reorder(self, active_id: UUID, over_id: UUID) -> bool: ...

    async def nest(self, dragged_id: UUID, target_id: UUID) -> bool: ...


class DragReorderController:
    """
    Tracks one drag gesture at a time and routes the drop.

    The controller is synchronous; only ``drop`` awaits, and it is back in
    IDLE before it hands the drop to the dispatcher.
    """

    def __init__(self, dispatcher: Optional[DropDispatcher] = None) -> None:
        """
        Initialize the controller.

        Args:
            dispatcher: Receives reorder/nest drops
        """
        self.dispatcher = dispatcher
        self._state = DragState.IDLE
        self._active_id: Optional[UUID] = None
        self._hover: Optional[HoverTarget] = None

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def active_id(self) -> Optional[UUID]:
        return self._active_id

    @property
    def hover(self) -> Optional[HoverTarget]:
        return self._hover

    @property
    def is_dragging(self) -> bool:
        return self._state is not DragState.IDLE

    def start(self, active_id: UUID) -> None:
        """
        Begin dragging ``active_id``.

        Raises:
            DragStateError: If a gesture is already in progress
        """
        if self._state is not DragState.IDLE:
            raise DragStateError(
                f"Cannot start dragging {active_id}: already dragging {self._active_id}"
            )
        self._state = DragState.DRAGGING
        self._active_id = active_id
        self._hover = None
        logger.debug(f"Drag started: active={active_id}")

    def over(self, target_id: Optional[str]) -> HoverTarget:
        """
        Record the element currently under the pointer.

        Args:
            target_id: Raw drop-target id, or None when over nothing

        Returns:
            The recorded hover target

        Raises:
            DragStateError: If no gesture is in progress
        """
        if self._state is DragState.IDLE:
            raise DragStateError("Pointer-over received while idle")
        self._hover = HoverTarget.parse(target_id)
        self._state = DragState.HOVER
        return self._hover

    def cancel(self) -> None:
        """Abort the gesture. Nothing is mutated or written."""
        if self._state is not DragState.IDLE:
            logger.debug(f"Drag cancelled: active={self._active_id}")
        self._reset()

    def resolve(self) -> DropAction:
        """
        End the gesture and decide what the drop means.

        Returns to IDLE in every case.

        Returns:
            DropAction describing the reorder, nest, or cancellation
        """
        active_id = self._active_id
        hover = self._hover
        self._reset()

        if active_id is None or hover is None or hover.kind is HoverKind.NONE:
            return DropAction(DropKind.CANCEL, active_id)
        if hover.kind is HoverKind.NEST_ZONE:
            return DropAction(DropKind.NEST, active_id, hover.task_id)
        return DropAction(DropKind.REORDER, active_id, hover.task_id)

    async def drop(self) -> DropAction:
        """
        End the gesture and dispatch the resulting action.

        Returns:
            The resolved DropAction, with ``saved`` set to the dispatcher's
            result

        Raises:
            NestValidationError: Propagated from the dispatcher
        """
        action = self.resolve()
        logger.debug(
            f"Drop resolved: kind={action.kind.value}, "
            f"active={action.active_id}, target={action.target_id}"
        )

        if self.dispatcher is None or action.kind is DropKind.CANCEL:
            return action

        if action.kind is DropKind.NEST:
            saved = await self.dispatcher.nest(action.active_id, action.target_id)
        else:
            saved = await self.dispatcher.reorder(action.active_id, action.target_id)
        return replace(action, saved=saved)

    def preview(self, collection: OrderedTaskCollection) -> List[Task]:
        """
        Transient display order for direct-manipulation feedback.

        Shows the dragged task at the hovered sibling's index; any other
        state shows the committed order. Never mutates the collection.
        """
        hover = self._hover
        if (
            self._active_id is None
            or hover is None
            or hover.kind is not HoverKind.SIBLING
        ):
            return collection.incomplete
        try:
            return collection.preview(self._active_id, hover.task_id)
        except TaskNotFoundError:
            return collection.incomplete

    def _reset(self) -> None:
        self._state = DragState.IDLE
        self._active_id = None
        self._hover = None
