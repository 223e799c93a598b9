"""
Today board service for Stickies.

Composes the ordered collection, the drag controller, the nest engine and the
persistence layer behind one async API. Every mutation goes through
PersistenceSync, so the view updates immediately and is reconciled with the
store if the write fails.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Union
from uuid import UUID

from pydantic import BaseModel, computed_field

from stickies.config import Config
from stickies.logging_config import get_logger
from stickies.models import ModeFilter, Subtask, Task, TaskMode
from stickies.services.drag_controller import DragReorderController
from stickies.services.errors import (
    CommitInProgressError,
    TaskNotFoundError,
    ValidationError,
)
from stickies.services.nest_conversion import NestConversionEngine
from stickies.services.operations import (
    BoardOperation,
    InsertTaskOp,
    ReorderOp,
    SubtasksOp,
    UpdateTasksOp,
)
from stickies.services.ordered_collection import OrderedTaskCollection
from stickies.services.persistence_sync import PersistenceSync
from stickies.store import Store

logger = get_logger(__name__)


class CommitOutcome(Enum):
    """How the last board operation ended."""

    SAVED = "saved"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"
    RECONCILED = "reconciled"


class BoardStats(BaseModel):
    """Completion counts for the tasks currently on the board."""

    total: int = 0
    completed: int = 0
    subtasks: int = 0
    completed_subtasks: int = 0

    @computed_field
    @property
    def incomplete(self) -> int:
        return self.total - self.completed

    @computed_field
    @property
    def progress_string(self) -> str:
        """Task progress such as "3/7", or empty string for an empty board."""
        if not self.total:
            return ""
        return f"{self.completed}/{self.total}"


class TodayBoard:
    """
    The ordered task board for one owner.

    Operations return True when a write was committed and False when nothing
    was written: no-ops, ids no longer on the board, a commit already in
    flight, or a failed write that has been reconciled. ``last_outcome`` tells
    those cases apart. Invalid requests raise ValidationError before anything
    changes.
    """

    def __init__(
        self,
        store: Store,
        owner_id: str = "local",
        mode_filter: Union[ModeFilter, str] = ModeFilter.ALL,
        today_only: bool = False,
        on_change_callback: Optional[Callable[[], None]] = None,
        engine: Optional[NestConversionEngine] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        """
        Initialize the board.

        Args:
            store: Backing document store
            owner_id: Owner whose tasks are shown
            mode_filter: Initial mode filter
            today_only: Only show tasks planned for the current day
            on_change_callback: Called whenever the visible state changes
            engine: Nest conversion engine, mainly for deterministic ids in tests
            clock: Returns the current day
        """
        self.owner_id = owner_id
        self.today_only = today_only
        self._clock = clock
        self.collection = OrderedTaskCollection(
            mode_filter=ModeFilter(mode_filter),
            day=clock() if today_only else None,
        )
        self.sync = PersistenceSync(store, self.collection, owner_id, on_change_callback)
        self.engine = engine or NestConversionEngine()
        self.controller = DragReorderController(dispatcher=self)
        self._expanded: Set[UUID] = set()
        self._last_outcome = CommitOutcome.UNCHANGED

    @classmethod
    def from_config(
        cls,
        store: Store,
        config: Config,
        on_change_callback: Optional[Callable[[], None]] = None,
    ) -> "TodayBoard":
        """Create a board using the [board] section of the configuration."""
        board_config = config.get_board_config()
        return cls(
            store,
            owner_id=board_config['owner_id'],
            mode_filter=board_config['mode_filter'],
            today_only=board_config['today_only'],
            on_change_callback=on_change_callback,
        )

    # ==============================================================================
    # VIEW
    # ==============================================================================

    @property
    def mode_filter(self) -> ModeFilter:
        return self.collection.mode_filter

    @property
    def incomplete(self) -> List[Task]:
        return self.collection.incomplete

    @property
    def completed(self) -> List[Task]:
        return self.collection.completed

    @property
    def tasks(self) -> List[Task]:
        return self.collection.tasks

    def display_order(self) -> List[Task]:
        """Tasks as they should be drawn, including any drag preview."""
        return self.controller.preview(self.collection) + self.collection.completed

    def today(self) -> date:
        return self._clock()

    @property
    def last_outcome(self) -> CommitOutcome:
        """Outcome of the most recent mutating operation."""
        return self._last_outcome

    def is_expanded(self, task_id: UUID) -> bool:
        return task_id in self._expanded

    def toggle_expanded(self, task_id: UUID) -> bool:
        """
        Flip the expanded flag of a task. Expansion is view state only.

        Returns:
            The new expanded state
        """
        if task_id in self._expanded:
            self._expanded.discard(task_id)
            return False
        self._expanded.add(task_id)
        return True

    def stats(self) -> BoardStats:
        """Completion counts for the current view."""
        tasks = self.collection.tasks
        return BoardStats(
            total=len(tasks),
            completed=sum(1 for task in tasks if task.completed),
            subtasks=sum(task.subtask_count for task in tasks),
            completed_subtasks=sum(task.completed_subtask_count for task in tasks),
        )

    # ==============================================================================
    # LOADING AND FILTERS
    # ==============================================================================

    async def load(self) -> None:
        """
        Load the board from the store.

        Raises:
            PersistenceError: If the store cannot be read
        """
        if self.today_only:
            self.collection.day = self._clock()
        await self.sync.reload()

    async def reload(self) -> None:
        """Discard local state and reload from the store."""
        await self.load()

    def set_mode_filter(self, mode_filter: Union[ModeFilter, str]) -> bool:
        """
        Change the mode filter and re-partition from the last loaded tasks.

        Args:
            mode_filter: New filter

        Returns:
            False if a commit is in flight and the filter was left unchanged
        """
        mode_filter = ModeFilter(mode_filter)
        if self.sync.in_flight:
            logger.warning("Mode filter change ignored while a commit is in flight")
            return False
        self.collection.mode_filter = mode_filter
        self.sync.refilter()
        logger.info(f"Mode filter set to {mode_filter.value}")
        return True

    def cycle_mode_filter(self) -> ModeFilter:
        """Advance to the next mode filter and return it."""
        self.set_mode_filter(self.mode_filter.next())
        return self.mode_filter

    # ==============================================================================
    # COMMITS
    # ==============================================================================

    def _begin(self) -> None:
        self._last_outcome = CommitOutcome.UNCHANGED

    def _reject(self, what: str) -> bool:
        logger.warning(f"Rejected {what}: a commit is already in flight")
        self._last_outcome = CommitOutcome.REJECTED
        return False

    async def _commit(self, op: BoardOperation) -> bool:
        if self.sync.in_flight:
            return self._reject(op.name)
        try:
            saved = await self.sync.commit(op)
        except CommitInProgressError:
            return self._reject(op.name)
        self._last_outcome = CommitOutcome.SAVED if saved else CommitOutcome.RECONCILED
        return saved

    def _lookup(self, task_id: UUID) -> Optional[Task]:
        task = self.collection.find(task_id)
        if task is None:
            logger.warning(f"Task {task_id} is no longer on the board")
        return task

    def _lookup_many(self, task_ids: Iterable[UUID]) -> List[Task]:
        tasks: List[Task] = []
        seen: Set[UUID] = set()
        for task_id in task_ids:
            if task_id in seen:
                continue
            seen.add(task_id)
            task = self._lookup(task_id)
            if task is not None:
                tasks.append(task)
        return tasks

    @staticmethod
    def _clean_title(title: str, what: str = "Task") -> str:
        cleaned = (title or "").strip()
        if not cleaned:
            raise ValidationError(f"{what} title cannot be empty")
        return cleaned

    @staticmethod
    def _completion_changes(
        task: Task,
        completed: bool,
        at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        updated = task.model_copy()
        if completed:
            updated.mark_completed(at)
        else:
            updated.mark_incomplete()
        return {'completed': updated.completed, 'completed_at': updated.completed_at}

    # ==============================================================================
    # DRAG AND DROP
    # ==============================================================================

    async def reorder(self, active_id: UUID, over_id: UUID) -> bool:
        """
        Move ``active_id`` to the slot of ``over_id`` and persist every position.

        Args:
            active_id: Dragged task
            over_id: Task under the drop point

        Returns:
            True if the new order was committed
        """
        self._begin()
        try:
            positions = self.collection.compute_reorder(active_id, over_id)
        except TaskNotFoundError as e:
            logger.warning(f"Reorder ignored: {e}")
            return False

        if not positions:
            logger.debug(f"Reorder of {active_id} onto itself ignored")
            return False

        return await self._commit(ReorderOp(active_id, over_id, positions))

    async def nest(self, dragged_id: UUID, target_id: UUID) -> bool:
        """
        Turn ``dragged_id`` into a subtask of ``target_id``.

        The target is expanded so the new subtask is visible.

        Returns:
            True if the conversion was committed

        Raises:
            NestValidationError: For self-nesting or a completed task on
                                 either side
        """
        self._begin()
        dragged = self._lookup(dragged_id)
        target = self._lookup(target_id)
        if dragged is None or target is None:
            return False

        op = self.engine.build(dragged, target)
        if self.sync.in_flight:
            return self._reject(op.name)
        self._expanded.add(target_id)
        return await self._commit(op)

    # ==============================================================================
    # TASK EDITS
    # ==============================================================================

    async def toggle_complete(self, task_id: UUID) -> bool:
        """
        Flip the completion flag of a task.

        A re-opened task joins the end of the incomplete partition.
        """
        self._begin()
        task = self._lookup(task_id)
        if task is None:
            return False

        changes = self._completion_changes(task, not task.completed)
        if task.completed:
            changes['position'] = self.collection.next_position()

        return await self._commit(UpdateTasksOp({task_id: changes}))

    async def toggle_subtask(self, task_id: UUID, subtask_id: str) -> bool:
        """Flip the completion flag of one subtask."""
        self._begin()
        task = self._lookup(task_id)
        if task is None:
            return False
        if task.get_subtask(subtask_id) is None:
            logger.warning(f"Subtask {subtask_id} not found on task {task_id}")
            return False

        subtasks = tuple(
            s.toggled() if s.id == subtask_id else s.model_copy()
            for s in task.subtasks
        )
        return await self._commit(SubtasksOp(task_id, subtasks))

    async def add_task(
        self,
        title: str,
        description: str = "",
        mode: Optional[Union[TaskMode, str]] = None,
        subtasks: Sequence[str] = (),
    ) -> bool:
        """
        Create a task at the end of the incomplete partition.

        Args:
            title: Task title
            description: Optional details
            mode: Task mode, defaults to the active filter's mode
            subtasks: Titles of initial subtasks; blank titles are skipped

        Returns:
            True if the task was committed

        Raises:
            ValidationError: If the title is empty
        """
        self._begin()
        title = self._clean_title(title)
        task = Task(
            owner_id=self.owner_id,
            title=title,
            description=description.strip(),
            mode=TaskMode(mode) if mode else self.mode_filter.default_mode(),
            position=self.collection.next_position(),
            start_date=self.collection.day or self._clock(),
            subtasks=[Subtask(title=s.strip()) for s in subtasks if s.strip()],
        )
        logger.debug(f"Adding task '{title}' at position {task.position}")
        return await self._commit(InsertTaskOp(task))

    async def add_subtask(self, task_id: UUID, title: str) -> bool:
        """
        Append a subtask and expand its owner.

        Raises:
            ValidationError: If the title is empty
        """
        self._begin()
        title = self._clean_title(title, "Subtask")
        task = self._lookup(task_id)
        if task is None:
            return False

        subtasks = tuple(s.model_copy() for s in task.subtasks) + (Subtask(title=title),)
        if self.sync.in_flight:
            return self._reject("subtask add")
        self._expanded.add(task_id)
        return await self._commit(SubtasksOp(task_id, subtasks))

    # ==============================================================================
    # BULK EDITS
    # ==============================================================================

    async def bulk_complete(self, task_ids: Iterable[UUID]) -> bool:
        """Complete every listed task that is still open, in one batch."""
        self._begin()
        now = datetime.utcnow()
        changes = {
            task.id: self._completion_changes(task, True, at=now)
            for task in self._lookup_many(task_ids)
            if not task.completed
        }
        if not changes:
            return False
        return await self._commit(UpdateTasksOp(changes))

    async def bulk_set_mode(self, task_ids: Iterable[UUID], mode: Union[TaskMode, str]) -> bool:
        """Move the listed tasks to ``mode``, in one batch."""
        self._begin()
        mode = TaskMode(mode)
        changes = {
            task.id: {'mode': mode}
            for task in self._lookup_many(task_ids)
            if task.mode is not mode
        }
        if not changes:
            return False
        return await self._commit(UpdateTasksOp(changes))

    async def bulk_move_to_date(self, task_ids: Iterable[UUID], day: date) -> bool:
        """Replan the listed tasks for ``day``, in one batch."""
        self._begin()
        changes = {
            task.id: {'start_date': day}
            for task in self._lookup_many(task_ids)
            if task.start_date != day
        }
        if not changes:
            return False
        return await self._commit(UpdateTasksOp(changes))
