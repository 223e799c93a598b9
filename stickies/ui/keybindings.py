"""Keyboard bindings for Stickies.

The board is driven entirely from the keyboard. A drag gesture is:
``g`` to grab the selected task, ``up``/``down`` to move the drop target,
``n`` to switch between dropping beside the target and dropping into its
nest zone, then ``enter`` to drop or ``escape`` to cancel.

Outside a drag, ``up``/``down`` also step through the subtasks of an
expanded task, and ``space`` toggles whichever row holds the cursor.
"""

from textual.binding import Binding

from stickies.logging_config import get_logger

# Initialize logger for this module
logger = get_logger(__name__)


# Navigation keybindings (also move the drop target while dragging)
NAVIGATION_BINDINGS = [
    Binding("up", "navigate_up", "Up", show=False),
    Binding("down", "navigate_down", "Down", show=False),
]

# Drag gesture keybindings
DRAG_BINDINGS = [
    Binding("g,G", "grab", "Grab", show=True),
    Binding("n,N", "toggle_nest_zone", "Nest Zone", show=True),
    Binding("enter", "drop", "Drop", show=True),
    Binding("escape", "cancel_drag", "Cancel", show=False),
]

# Task action keybindings
TASK_ACTION_BINDINGS = [
    Binding("space", "toggle_completion", "Toggle Complete", show=True),
    Binding("e,E", "toggle_expanded", "Expand", show=True),
    Binding("a,A", "add_task", "Add Task", show=True),
    Binding("s,S", "add_subtask", "Add Subtask", show=True),
]

# Bulk action keybindings (act on marked tasks, or the selected one)
BULK_BINDINGS = [
    Binding("v,V", "toggle_mark", "Mark", show=True),
    Binding("c,C", "bulk_complete", "Complete Marked", show=False),
    Binding("p,P", "bulk_switch_mode", "Switch Mode", show=False),
    Binding("d,D", "bulk_move_to_tomorrow", "Tomorrow", show=False),
]

# Board keybindings
BOARD_BINDINGS = [
    Binding("m,M", "cycle_mode_filter", "Mode Filter", show=True),
    Binding("r,R", "reload", "Reload", show=True),
]

# Application control keybindings
APP_CONTROL_BINDINGS = [
    Binding("q,Q", "quit", "Quit", show=True),
]


def move_index(index: int, delta: int, count: int) -> int:
    """Move a row index by ``delta``, clamped to ``0..count-1``.

    Args:
        index: Current index
        delta: Rows to move (negative is up)
        count: Number of rows

    Returns:
        New index, or 0 when there are no rows
    """
    if count <= 0:
        return 0
    new_index = max(0, min(count - 1, index + delta))
    logger.debug(f"Keybindings: move index {index} by {delta} -> {new_index}")
    return new_index


def get_all_bindings() -> list[Binding]:
    """Get all application keybindings.

    Returns:
        List of all Binding objects
    """
    return (
        NAVIGATION_BINDINGS +
        DRAG_BINDINGS +
        TASK_ACTION_BINDINGS +
        BULK_BINDINGS +
        BOARD_BINDINGS +
        APP_CONTROL_BINDINGS
    )
