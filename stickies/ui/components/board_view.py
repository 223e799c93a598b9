"""BoardView widget listing the day's task cards."""

from typing import List, Optional, Set
from uuid import UUID

from rich.text import Text
from textual.widget import Widget

from stickies.models import Task
from stickies.services.drag_controller import HoverKind, HoverTarget
from stickies.ui.components.task_card import CardMarker, render_task_card
from stickies.ui.constants import EMPTY_BOARD_MESSAGE
from stickies.ui.theme import BORDER, COMMENT


class BoardView(Widget):
    """Renders the board: incomplete tasks in order, then completed ones.

    The widget holds no board state of its own; the app pushes a fresh
    snapshot with :meth:`show` after every change.
    """

    DEFAULT_CSS = f"""
    BoardView {{
        height: auto;
        width: 100%;
        border: round {BORDER};
        padding: 0 1;
    }}
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._tasks: List[Task] = []
        self._selected_index = 0
        self._expanded: Set[UUID] = set()
        self._dragging_id: Optional[UUID] = None
        self._hover: Optional[HoverTarget] = None
        self._marked: Set[UUID] = set()
        self._subtask_index: Optional[int] = None

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    @property
    def selected_index(self) -> int:
        return self._selected_index

    def show(
        self,
        tasks: List[Task],
        selected_index: int = 0,
        expanded: Optional[Set[UUID]] = None,
        dragging_id: Optional[UUID] = None,
        hover: Optional[HoverTarget] = None,
        marked: Optional[Set[UUID]] = None,
        subtask_index: Optional[int] = None,
    ) -> None:
        """Replace the displayed snapshot and redraw.

        Args:
            tasks: Tasks in display order
            selected_index: Row holding the cursor
            expanded: Ids of tasks whose subtasks are shown
            dragging_id: Task being dragged, if any
            hover: Current drop target, if any
            marked: Ids of tasks marked for a bulk action
            subtask_index: Subtask holding the cursor within the selected row
        """
        self._tasks = list(tasks)
        self._selected_index = selected_index
        self._expanded = set(expanded or ())
        self._dragging_id = dragging_id
        self._hover = hover
        self._marked = set(marked or ())
        self._subtask_index = subtask_index
        self.refresh(layout=True)

    def _marker_for(self, task: Task) -> CardMarker:
        if self._dragging_id is None:
            return CardMarker.NONE
        if task.id == self._dragging_id:
            return CardMarker.DRAGGING
        if self._hover is not None and self._hover.task_id == task.id:
            if self._hover.kind is HoverKind.NEST_ZONE:
                return CardMarker.NEST_TARGET
            if self._hover.kind is HoverKind.SIBLING:
                return CardMarker.DROP_TARGET
        return CardMarker.NONE

    def render(self) -> Text:
        if not self._tasks:
            return Text(EMPTY_BOARD_MESSAGE, style=f"italic {COMMENT}")

        cards = [
            render_task_card(
                task,
                selected=index == self._selected_index,
                expanded=task.id in self._expanded,
                marker=self._marker_for(task),
                marked=task.id in self._marked,
                selected_subtask=self._subtask_index if index == self._selected_index else None,
            )
            for index, task in enumerate(self._tasks)
        ]
        return Text("\n").join(cards)
