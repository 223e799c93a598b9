"""Rendering of a single sticky task card.

A card is one title line followed, when the task is expanded, by one line per
subtask. The drag markers show which task is grabbed and where it will land.
"""

from enum import Enum
from typing import Optional

from rich.text import Text

from stickies.models import Task
from stickies.ui.theme import (
    COMMENT,
    COMPLETE_COLOR,
    DRAG_COLOR,
    DROP_TARGET_COLOR,
    FOREGROUND,
    MARK_COLOR,
    NEST_ZONE_COLOR,
    SELECTION,
    get_mode_color,
    get_priority_color,
)


class CardMarker(Enum):
    """Drag feedback shown on a card."""
    NONE = "none"
    DRAGGING = "dragging"
    DROP_TARGET = "drop_target"
    NEST_TARGET = "nest_target"


def render_task_card(
    task: Task,
    selected: bool = False,
    expanded: bool = False,
    marker: CardMarker = CardMarker.NONE,
    marked: bool = False,
    selected_subtask: Optional[int] = None,
) -> Text:
    """Render a task as Rich Text.

    Args:
        task: Task to render
        selected: Whether the card holds the cursor
        expanded: Whether subtasks are shown
        marker: Drag feedback for this card
        marked: Whether the task is marked for a bulk action
        selected_subtask: Index of the subtask holding the cursor, if any

    Returns:
        Rich Text for the card, one line per row
    """
    text = Text()

    if marker is CardMarker.DRAGGING:
        text.append("≡ ", style=f"bold {DRAG_COLOR}")
    elif marker is CardMarker.DROP_TARGET:
        text.append("→ ", style=f"bold {DROP_TARGET_COLOR}")
    elif marker is CardMarker.NEST_TARGET:
        text.append("↳ ", style=f"bold {NEST_ZONE_COLOR}")
    elif marked:
        text.append("• ", style=f"bold {MARK_COLOR}")
    else:
        text.append("  ")

    text.append("▌", style=get_mode_color(task.mode.value))

    if task.completed:
        text.append("[✓] ", style=COMPLETE_COLOR)
        text.append(task.title, style=f"strike {COMPLETE_COLOR}")
    else:
        text.append("[ ] ", style=FOREGROUND)
        text.append(task.title, style=FOREGROUND)

    text.append(" ●", style=get_priority_color(task.priority.value))

    if task.subtasks:
        fold = "▾" if expanded else "▸"
        text.append(f" {fold} {task.progress_string}", style=f"{COMMENT}")

    if marker is CardMarker.NEST_TARGET:
        text.append("  drop to nest here", style=f"italic {NEST_ZONE_COLOR}")

    if selected:
        text.stylize(f"on {SELECTION}")

    if expanded:
        for index, subtask in enumerate(task.subtasks):
            line = Text("    › " if index == selected_subtask else "      ")
            if subtask.completed:
                line.append("[✓] ", style=COMPLETE_COLOR)
                line.append(subtask.title, style=f"strike {COMPLETE_COLOR}")
            else:
                line.append("[ ] ", style=COMMENT)
                line.append(subtask.title, style=FOREGROUND)
            if index == selected_subtask:
                line.stylize(f"on {SELECTION}")
            text.append("\n")
            text.append_text(line)

    return text
