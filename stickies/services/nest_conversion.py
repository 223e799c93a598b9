"""
Nest conversion for the Stickies board.

Dropping a task onto another task's nest zone demotes it into a subtask of
that task: the target gains a fresh subtask carrying the dragged title and the
dragged task is soft-deleted. Both writes are committed as one batch.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from stickies.logging_config import get_logger
from stickies.models import Subtask, Task, new_subtask_id
from stickies.services.errors import NestValidationError
from stickies.services.operations import BoardOperation
from stickies.services.ordered_collection import OrderedTaskCollection
from stickies.store import MarkDeleted, SubtasksUpdate, WriteOp

logger = get_logger(__name__)


@dataclass
class NestOp(BoardOperation):
    """
    Demote ``dragged_id`` into a subtask of ``target_id``.

    ``subtasks`` is the target's complete new subtask list, ending with
    ``subtask``. Applying the op runs the conversion against the collection
    with that same subtask, so the local view matches the writes.
    """

    dragged_id: UUID
    target_id: UUID
    subtask: Subtask
    subtasks: Tuple[Subtask, ...]
    engine: Optional["NestConversionEngine"] = field(default=None, repr=False, compare=False)
    name = "nest"

    def apply(self, collection: OrderedTaskCollection) -> None:
        engine = self.engine or NestConversionEngine()
        engine.convert(
            collection.get(self.dragged_id),
            collection.get(self.target_id),
            collection,
            subtask=self.subtask,
        )

    def writes(self) -> List[WriteOp]:
        return [
            SubtasksUpdate(task_id=self.target_id, subtasks=self.subtasks),
            MarkDeleted(task_id=self.dragged_id),
        ]


class NestConversionEngine:
    """
    Validates and builds task-to-subtask conversions.

    The conversion is one-way: the new subtask keeps no reference to the task
    it came from.
    """

    def __init__(self, id_factory: Callable[[], str] = new_subtask_id) -> None:
        """
        Initialize the engine.

        Args:
            id_factory: Generates ids for new subtasks
        """
        self._id_factory = id_factory

    def validate(self, dragged: Task, target: Task) -> None:
        """
        Check that ``dragged`` may be nested under ``target``.

        Raises:
            NestValidationError: For self-nesting, a completed task on either
                                 side, or a task that is already deleted
        """
        if dragged.id == target.id:
            raise NestValidationError("A task cannot be nested under itself")
        if target.completed:
            raise NestValidationError(
                f"Cannot nest under completed task '{target.title}'"
            )
        if dragged.completed:
            raise NestValidationError(
                f"Completed task '{dragged.title}' cannot be nested"
            )
        if dragged.is_deleted or target.is_deleted:
            raise NestValidationError("Cannot nest a deleted task")

    def build(
        self,
        dragged: Task,
        target: Task,
        subtask: Optional[Subtask] = None,
    ) -> NestOp:
        """
        Build the nest transaction without touching either task.

        Args:
            dragged: Task being demoted
            target: Task receiving the new subtask
            subtask: Subtask to append; a fresh one is created if omitted

        Returns:
            NestOp ready to commit

        Raises:
            NestValidationError: If the conversion is not allowed
        """
        self.validate(dragged, target)

        if subtask is None:
            subtask = Subtask(id=self._id_factory(), title=dragged.title, completed=False)
        subtasks = tuple(s.model_copy() for s in target.subtasks) + (subtask,)

        logger.debug(
            f"Built nest op: dragged={dragged.id}, target={target.id}, subtask={subtask.id}"
        )
        return NestOp(
            dragged_id=dragged.id,
            target_id=target.id,
            subtask=subtask,
            subtasks=subtasks,
            engine=self,
        )

    def convert(
        self,
        dragged: Task,
        target: Task,
        collection: Optional[OrderedTaskCollection] = None,
        subtask: Optional[Subtask] = None,
    ) -> NestOp:
        """
        Validate and apply a nest conversion locally.

        The target gains the new subtask and the dragged task is marked
        deleted. With a collection, the dragged task also leaves the view.

        Args:
            dragged: Task being demoted
            target: Task receiving the new subtask
            collection: Optional view holding both tasks
            subtask: Subtask to append, when the op was built beforehand

        Returns:
            The applied NestOp, for persistence

        Raises:
            NestValidationError: If the conversion is not allowed
        """
        op = self.build(dragged, target, subtask=subtask)

        target.subtasks = list(op.subtasks)
        dragged.is_deleted = True
        if collection is not None:
            collection.remove(dragged.id)

        logger.info(f"Nested task {dragged.id} under {target.id}")
        return op
