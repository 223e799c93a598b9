"""
Document store access for the Stickies board.

The board only needs two primitives from its backing store: load every task
document for an owner, and apply a batch of field writes all-or-nothing.
``Store`` is that capability; ``SqlAlchemyStore`` implements it on top of the
async SQLAlchemy layer in :mod:`stickies.database`.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence, Tuple, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stickies.database import DatabaseManager, TaskDocumentORM
from stickies.logging_config import get_logger
from stickies.models import Subtask, Task
from stickies.services.errors import PersistenceError

logger = get_logger(__name__)

# Fields a FieldUpdate may touch. Subtasks and is_deleted have dedicated
# write types.
UPDATABLE_FIELDS = frozenset({
    "title",
    "description",
    "completed",
    "completed_at",
    "mode",
    "priority",
    "start_date",
    "project_id",
    "position",
})


@dataclass(frozen=True)
class PositionUpdate:
    """Set the rank of one task."""
    task_id: UUID
    position: int


@dataclass(frozen=True)
class SubtasksUpdate:
    """Replace the embedded subtask list of one task."""
    task_id: UUID
    subtasks: Tuple[Subtask, ...]


@dataclass(frozen=True)
class MarkDeleted:
    """Soft-delete one task."""
    task_id: UUID


@dataclass(frozen=True)
class FieldUpdate:
    """Set plain scalar fields of one task."""
    task_id: UUID
    changes: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = set(self.changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable through FieldUpdate: {sorted(unknown)}")


@dataclass(frozen=True)
class InsertTask:
    """Create a new task document."""
    task: Task


WriteOp = Union[PositionUpdate, SubtasksUpdate, MarkDeleted, FieldUpdate, InsertTask]


class Store(Protocol):
    """Backing document store used by the board."""

    async def load_all(self, owner_id: str) -> List[Task]: ...

    async def atomic_write(self, ops: Sequence[WriteOp]) -> None: ...


def _orm_to_model(doc: TaskDocumentORM) -> Task:
    """
    Convert a stored document into a Task model.

    Args:
        doc: SQLAlchemy ORM task document

    Returns:
        Pydantic Task instance
    """
    return Task.model_validate(
        {
            "id": UUID(doc.id),
            "owner_id": doc.owner_id,
            "title": doc.title,
            "description": doc.description or "",
            "completed": doc.completed,
            "position": doc.position,
            "subtasks": doc.subtasks or [],
            "is_deleted": doc.is_deleted,
            "project_id": doc.project_id,
            "mode": doc.mode,
            "priority": doc.priority,
            "start_date": doc.start_date,
            "created_at": doc.created_at,
            "completed_at": doc.completed_at,
        }
    )


def _model_to_orm(task: Task) -> TaskDocumentORM:
    """
    Convert a Task model into a new ORM document.

    Args:
        task: Pydantic Task instance

    Returns:
        SQLAlchemy ORM task document
    """
    return TaskDocumentORM(
        id=str(task.id),
        owner_id=task.owner_id,
        title=task.title,
        description=task.description,
        completed=task.completed,
        position=task.position,
        subtasks=_dump_subtasks(task.subtasks),
        is_deleted=task.is_deleted,
        project_id=task.project_id,
        mode=task.mode.value,
        priority=task.priority.value,
        start_date=task.start_date,
        created_at=task.created_at,
        completed_at=task.completed_at,
    )


def _dump_subtasks(subtasks: Sequence[Subtask]) -> List[Dict[str, Any]]:
    return [subtask.model_dump() for subtask in subtasks]


def _column_value(value: Any) -> Any:
    """Unwrap enum values for storage."""
    return getattr(value, "value", value)


class SqlAlchemyStore:
    """
    Store implementation on the async SQLAlchemy database layer.

    Every ``atomic_write`` runs in one session, so the batch is committed
    together or rolled back together.
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        """
        Initialize the store.

        Args:
            db_manager: Initialized DatabaseManager
        """
        self.db_manager = db_manager

    async def load_all(self, owner_id: str) -> List[Task]:
        """
        Load every task document owned by ``owner_id``, deleted ones included.

        Args:
            owner_id: Owner to load tasks for

        Returns:
            List of Task models in stored position order

        Raises:
            PersistenceError: If the database cannot be read
        """
        try:
            async with self.db_manager.get_session() as session:
                result = await session.execute(
                    select(TaskDocumentORM)
                    .where(TaskDocumentORM.owner_id == owner_id)
                    .order_by(TaskDocumentORM.position)
                )
                docs = result.scalars().all()
                tasks = [_orm_to_model(doc) for doc in docs]
        except SQLAlchemyError as e:
            logger.error(f"Failed to load tasks for owner {owner_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load tasks: {e}") from e

        logger.debug(f"Loaded {len(tasks)} task documents for owner {owner_id}")
        return tasks

    async def atomic_write(self, ops: Sequence[WriteOp]) -> None:
        """
        Apply a batch of writes all-or-nothing.

        Args:
            ops: Writes to apply, in order

        Raises:
            PersistenceError: If any write fails; nothing is applied
        """
        if not ops:
            return

        try:
            async with self.db_manager.get_session() as session:
                for op in ops:
                    await self._apply(session, op)
        except SQLAlchemyError as e:
            logger.error(f"Atomic write of {len(ops)} ops failed: {e}", exc_info=True)
            raise PersistenceError(f"Atomic write failed: {e}") from e

        logger.info(f"Committed atomic write: {len(ops)} ops")

    async def _get_document(self, session: AsyncSession, task_id: UUID) -> TaskDocumentORM:
        """
        Get a task document by id or fail the batch.

        Raises:
            PersistenceError: If the document does not exist
        """
        doc = await session.get(TaskDocumentORM, str(task_id))
        if doc is None:
            raise PersistenceError(f"Task document {task_id} does not exist")
        return doc

    async def _apply(self, session: AsyncSession, op: WriteOp) -> None:
        """Apply one write inside the open session."""
        if isinstance(op, InsertTask):
            session.add(_model_to_orm(op.task))
            await session.flush()
            return

        doc = await self._get_document(session, op.task_id)

        if isinstance(op, PositionUpdate):
            doc.position = op.position
        elif isinstance(op, SubtasksUpdate):
            doc.subtasks = _dump_subtasks(op.subtasks)
        elif isinstance(op, MarkDeleted):
            doc.is_deleted = True
        elif isinstance(op, FieldUpdate):
            for name, value in op.changes.items():
                setattr(doc, name, _column_value(value))
        else:
            raise PersistenceError(f"Unsupported write operation: {op!r}")

        await session.flush()
