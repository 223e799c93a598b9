"""Stickies UI components."""

from stickies.ui.components.board_view import BoardView
from stickies.ui.components.task_card import CardMarker, render_task_card
from stickies.ui.components.title_modal import TitleInputModal

__all__ = ["BoardView", "CardMarker", "TitleInputModal", "render_task_card"]
