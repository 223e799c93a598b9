"""
Committable board operations.

Each operation knows how to apply itself to the in-memory collection and
which store writes persist it. PersistenceSync applies the first and sends
the second as one atomic batch.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple
from uuid import UUID

from stickies.models import Subtask, Task
from stickies.services.ordered_collection import OrderedTaskCollection
from stickies.store import (
    FieldUpdate,
    InsertTask,
    PositionUpdate,
    SubtasksUpdate,
    WriteOp,
)


class BoardOperation:
    """Base class for operations committed through PersistenceSync."""

    name = "operation"

    def apply(self, collection: OrderedTaskCollection) -> None:
        raise NotImplementedError

    def writes(self) -> List[WriteOp]:
        raise NotImplementedError


@dataclass
class ReorderOp(BoardOperation):
    """
    Move ``active_id`` to the slot of ``over_id``.

    ``positions`` is the resulting rank of every task in the incomplete
    partition, as computed before the commit.
    """

    active_id: UUID
    over_id: UUID
    positions: Dict[UUID, int]
    name = "reorder"

    def apply(self, collection: OrderedTaskCollection) -> None:
        collection.reorder(self.active_id, self.over_id)

    def writes(self) -> List[WriteOp]:
        return [
            PositionUpdate(task_id=task_id, position=position)
            for task_id, position in sorted(self.positions.items(), key=lambda item: item[1])
        ]


@dataclass
class UpdateTasksOp(BoardOperation):
    """Set scalar fields on one or more tasks (toggles and bulk edits)."""

    changes: Dict[UUID, Dict[str, Any]] = field(default_factory=dict)
    name = "update"

    def apply(self, collection: OrderedTaskCollection) -> None:
        for task_id, task_changes in self.changes.items():
            task = collection.get(task_id)
            for name, value in task_changes.items():
                setattr(task, name, value)
        collection.repartition()

    def writes(self) -> List[WriteOp]:
        return [
            FieldUpdate(task_id=task_id, changes=dict(task_changes))
            for task_id, task_changes in self.changes.items()
        ]


@dataclass
class SubtasksOp(BoardOperation):
    """Replace one task's subtask list (subtask toggle or append)."""

    task_id: UUID
    subtasks: Tuple[Subtask, ...]
    name = "subtasks"

    def apply(self, collection: OrderedTaskCollection) -> None:
        collection.get(self.task_id).subtasks = list(self.subtasks)

    def writes(self) -> List[WriteOp]:
        return [SubtasksUpdate(task_id=self.task_id, subtasks=self.subtasks)]


@dataclass
class InsertTaskOp(BoardOperation):
    """Create a task at the end of the incomplete partition."""

    task: Task
    name = "insert"

    def apply(self, collection: OrderedTaskCollection) -> None:
        collection.add(self.task.model_copy(deep=True))

    def writes(self) -> List[WriteOp]:
        return [InsertTask(task=self.task)]
