"""
Ordered task collection for the Stickies board.

Holds the partitioned view the board renders: incomplete tasks in position
order, then completed tasks. Computes the dense reordering produced by a
drag-and-drop move.
"""

from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional
from uuid import UUID

from stickies.logging_config import get_logger
from stickies.models import ModeFilter, Task
from stickies.services.errors import TaskNotFoundError

logger = get_logger(__name__)


def _incomplete_sort_key(task: Task):
    return (task.position, -task.priority.rank)


def _completed_sort_key(task: Task):
    return -task.priority.rank


class OrderedTaskCollection:
    """
    The single source of truth for what order is currently displayed.

    Incomplete tasks are kept sorted by ``position``; after every reorder their
    positions are exactly ``0..n-1``. Completed tasks carry no ordering
    contract beyond rendering after the incomplete ones, so they are sorted by
    priority. Deleted tasks and tasks outside the active filters never enter
    the view.
    """

    def __init__(
        self,
        mode_filter: ModeFilter = ModeFilter.ALL,
        day: Optional[date] = None,
    ) -> None:
        """
        Initialize an empty collection.

        Args:
            mode_filter: Which task modes are visible
            day: If set, only tasks planned for this day are visible
        """
        self.mode_filter = mode_filter
        self.day = day
        self._incomplete: List[Task] = []
        self._completed: List[Task] = []

    # ==============================================================================
    # LOADING
    # ==============================================================================

    def is_visible(self, task: Task) -> bool:
        """
        Check whether a task belongs in the view.

        Args:
            task: Task to check

        Returns:
            True if the task is not deleted and passes the active filters
        """
        if task.is_deleted:
            return False
        if not self.mode_filter.matches(task):
            return False
        if self.day is not None and not task.is_planned_for(self.day):
            return False
        return True

    def load_snapshot(self, tasks: Iterable[Task]) -> None:
        """
        Replace the view with a freshly partitioned set of tasks.

        Args:
            tasks: Every task for the owner, including deleted ones
        """
        visible = [task for task in tasks if self.is_visible(task)]
        self._incomplete = sorted(
            (task for task in visible if not task.completed),
            key=_incomplete_sort_key,
        )
        self._completed = sorted(
            (task for task in visible if task.completed),
            key=_completed_sort_key,
        )
        logger.debug(
            f"Loaded snapshot: incomplete={len(self._incomplete)}, "
            f"completed={len(self._completed)}, mode_filter={self.mode_filter.value}"
        )

    def repartition(self) -> None:
        """Re-sort the held tasks after completion flags or filters changed."""
        self.load_snapshot(self._incomplete + self._completed)

    def snapshot(self) -> List[Task]:
        """Deep copies of every task in the view."""
        return [task.model_copy(deep=True) for task in self.tasks]

    def restore(self, snapshot: Iterable[Task]) -> None:
        """Restore a view previously captured with :meth:`snapshot`."""
        self.load_snapshot(task.model_copy(deep=True) for task in snapshot)

    # ==============================================================================
    # QUERIES
    # ==============================================================================

    @property
    def incomplete(self) -> List[Task]:
        """Incomplete tasks in display order."""
        return list(self._incomplete)

    @property
    def completed(self) -> List[Task]:
        """Completed tasks, after all incomplete ones."""
        return list(self._completed)

    @property
    def tasks(self) -> List[Task]:
        """Every task in display order."""
        return self._incomplete + self._completed

    def __len__(self) -> int:
        return len(self._incomplete) + len(self._completed)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    def __contains__(self, task_id: UUID) -> bool:
        return self.find(task_id) is not None

    def find(self, task_id: UUID) -> Optional[Task]:
        """Find a task in the view, or None."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get(self, task_id: UUID) -> Task:
        """
        Get a task in the view.

        Raises:
            TaskNotFoundError: If the task is not in the view
        """
        task = self.find(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} is not on the board")
        return task

    def index_of(self, task_id: UUID) -> int:
        """
        Get the display index of an incomplete task.

        Raises:
            TaskNotFoundError: If the task is not in the incomplete partition
        """
        for index, task in enumerate(self._incomplete):
            if task.id == task_id:
                return index
        raise TaskNotFoundError(f"Task {task_id} is not an incomplete task on the board")

    def ordering(self) -> Dict[UUID, int]:
        """Display rank of every incomplete task."""
        return {task.id: index for index, task in enumerate(self._incomplete)}

    def next_position(self) -> int:
        """
        Position for a task joining the end of the incomplete partition.

        Equals the incomplete count while positions are dense. After a task
        leaves the partition without a reorder, stored positions can have a
        gap, so the value never drops below ``max(position) + 1``.
        """
        if not self._incomplete:
            return 0
        return max(len(self._incomplete), max(t.position for t in self._incomplete) + 1)

    # ==============================================================================
    # REORDERING
    # ==============================================================================

    def preview(self, active_id: UUID, over_id: UUID) -> List[Task]:
        """
        Order the incomplete tasks would have if ``active_id`` were dropped on ``over_id``.

        Does not mutate the collection.

        Raises:
            TaskNotFoundError: If either id is not an incomplete task
        """
        old_index = self.index_of(active_id)
        new_index = self.index_of(over_id)

        moved = list(self._incomplete)
        task = moved.pop(old_index)
        moved.insert(new_index, task)
        return moved

    def compute_reorder(self, active_id: UUID, over_id: UUID) -> Dict[UUID, int]:
        """
        Compute the position mapping for a move without applying it.

        Args:
            active_id: Task being dragged
            over_id: Task currently occupying the drop index

        Returns:
            Mapping of every incomplete task id to its new position, or an
            empty mapping when the move is a no-op

        Raises:
            TaskNotFoundError: If either id is not an incomplete task
        """
        if active_id == over_id:
            self.index_of(active_id)
            return {}
        return {task.id: index for index, task in enumerate(self.preview(active_id, over_id))}

    def apply_positions(self, positions: Dict[UUID, int]) -> None:
        """
        Apply a position mapping and re-sort the incomplete partition.

        Args:
            positions: Mapping of task id to new position
        """
        for task in self._incomplete:
            if task.id in positions:
                task.position = positions[task.id]
        self._incomplete.sort(key=_incomplete_sort_key)

    def reorder(self, active_id: UUID, over_id: UUID) -> Dict[UUID, int]:
        """
        Move ``active_id`` to the index of ``over_id`` and reassign dense positions.

        Args:
            active_id: Task being dragged
            over_id: Task currently occupying the drop index

        Returns:
            Full id -> position mapping for persistence (empty for a no-op)

        Raises:
            TaskNotFoundError: If either id is not an incomplete task
        """
        positions = self.compute_reorder(active_id, over_id)
        if positions:
            self.apply_positions(positions)
            logger.debug(f"Reordered: active={active_id}, over={over_id}")
        return positions

    # ==============================================================================
    # STRUCTURAL CHANGES
    # ==============================================================================

    def add(self, task: Task) -> None:
        """Add a task to the view if it passes the filters."""
        if self.is_visible(task):
            self.load_snapshot(self.tasks + [task])

    def remove(self, task_id: UUID) -> Task:
        """
        Remove a task from the view.

        Raises:
            TaskNotFoundError: If the task is not in the view
        """
        task = self.get(task_id)
        self._incomplete = [t for t in self._incomplete if t.id != task_id]
        self._completed = [t for t in self._completed if t.id != task_id]
        return task
