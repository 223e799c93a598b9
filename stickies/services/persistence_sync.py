"""
Optimistic persistence for the Stickies board.

A commit applies its operation to the in-memory collection first, so the UI
never waits on the store, then sends the operation's writes as one atomic
batch. If the write fails, the local speculation is thrown away and the
authoritative state is reloaded. There is no merge and no retry: the last
successful write wins.
"""

from typing import Callable, Dict, List, Optional
from uuid import UUID

from stickies.logging_config import get_logger
from stickies.models import Task
from stickies.services.errors import (
    CommitInProgressError,
    PersistenceError,
)
from stickies.services.operations import BoardOperation
from stickies.services.ordered_collection import OrderedTaskCollection
from stickies.store import (
    FieldUpdate,
    InsertTask,
    MarkDeleted,
    PositionUpdate,
    Store,
    SubtasksUpdate,
    WriteOp,
)

logger = get_logger(__name__)


class PersistenceSync:
    """
    Serializes commits for one collection and reconciles failed writes.

    Only one commit may be in flight at a time; interleaved writes against the
    same position sequence could leave duplicate or skipped positions.
    """

    def __init__(
        self,
        store: Store,
        collection: OrderedTaskCollection,
        owner_id: str,
        on_change_callback: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Initialize the sync layer.

        Args:
            store: Backing document store
            collection: View kept in sync with the store
            owner_id: Owner whose tasks are loaded
            on_change_callback: Called whenever the collection changes
        """
        self.store = store
        self.collection = collection
        self.owner_id = owner_id
        self.on_change_callback = on_change_callback
        self._in_flight = False
        self._last_loaded: List[Task] = []

    @property
    def in_flight(self) -> bool:
        """True while a commit is waiting on the store."""
        return self._in_flight

    @property
    def last_loaded(self) -> List[Task]:
        """Copies of the last authoritative snapshot, deleted tasks included."""
        return [task.model_copy(deep=True) for task in self._last_loaded]

    def _notify(self) -> None:
        if self.on_change_callback:
            self.on_change_callback()

    async def reload(self) -> None:
        """
        Replace the collection with the store's current state.

        Raises:
            PersistenceError: If the store cannot be read
        """
        tasks = await self.store.load_all(self.owner_id)
        self._last_loaded = [task.model_copy(deep=True) for task in tasks]
        self.collection.load_snapshot(tasks)
        logger.info(f"Reloaded board: {len(self.collection)} visible tasks")
        self._notify()

    def refilter(self) -> None:
        """Rebuild the view from the last snapshot after the filters changed."""
        self.collection.load_snapshot(self.last_loaded)
        self._notify()

    async def commit(self, op: BoardOperation) -> bool:
        """
        Apply ``op`` locally, then persist it atomically.

        Args:
            op: Operation to commit

        Returns:
            True if the write succeeded, False if it failed and local state
            was reconciled with the store

        Raises:
            CommitInProgressError: If another commit has not resolved yet
        """
        if self._in_flight:
            raise CommitInProgressError(
                f"Cannot commit {op.name}: a previous commit is still in flight"
            )

        self._in_flight = True
        try:
            last_known_good = self.collection.snapshot()
            op.apply(self.collection)
            self._notify()

            writes = op.writes()
            try:
                await self.store.atomic_write(writes)
            except PersistenceError as e:
                logger.error(f"Commit of {op.name} failed, reconciling: {e}", exc_info=True)
                await self._reconcile(last_known_good)
                return False

            self._record_success(writes)
            logger.info(f"Committed {op.name}: {len(writes)} writes")
            return True
        finally:
            self._in_flight = False

    async def _reconcile(self, last_known_good: List[Task]) -> None:
        """Discard local speculation in favour of the store's state."""
        try:
            await self.reload()
        except PersistenceError as e:
            logger.error(f"Reload after failed commit also failed: {e}", exc_info=True)
            self.collection.restore(last_known_good)
            self._notify()

    def _record_success(self, writes: List[WriteOp]) -> None:
        """
        Fold a successful batch into the authoritative snapshot.

        Keeps later filter changes consistent with what the store now holds.
        """
        tasks: Dict[UUID, Task] = {
            task.id: task.model_copy(deep=True) for task in self._last_loaded
        }
        for write in writes:
            if isinstance(write, InsertTask):
                tasks[write.task.id] = write.task.model_copy(deep=True)
                continue

            task = tasks.get(write.task_id)
            if task is None:
                # Not in the snapshot; the next reload catches up.
                logger.debug(f"Snapshot has no task {write.task_id}, skipping write")
                continue

            if isinstance(write, PositionUpdate):
                task.position = write.position
            elif isinstance(write, SubtasksUpdate):
                task.subtasks = [s.model_copy() for s in write.subtasks]
            elif isinstance(write, MarkDeleted):
                task.is_deleted = True
            elif isinstance(write, FieldUpdate):
                for name, value in write.changes.items():
                    setattr(task, name, value)

        self._last_loaded = list(tasks.values())
