"""Title input modal for Stickies.

Asks for the title of a new task, or of a new subtask when opened for a
parent task. Enter saves, Escape cancels.
"""

from typing import Optional
from uuid import UUID

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from stickies.logging_config import get_logger
from stickies.models import Task
from stickies.ui.theme import (
    BACKGROUND,
    BORDER,
    COMMENT,
    DROP_TARGET_COLOR,
    NEST_ZONE_COLOR,
)

# Initialize logger for this module
logger = get_logger(__name__)


class TitleInputModal(ModalScreen):
    """Modal screen collecting a task or subtask title.

    Messages:
        TitleSubmitted: Emitted with a non-empty title
        TitleCancelled: Emitted when the modal is closed without saving
    """

    DEFAULT_CSS = f"""
    TitleInputModal {{
        align: center middle;
    }}

    TitleInputModal > Container {{
        width: 60;
        height: auto;
        background: {BACKGROUND};
        border: thick {BORDER};
        padding: 1 2;
    }}

    TitleInputModal .modal-header {{
        width: 100%;
        content-align: center middle;
        text-style: bold;
        margin-bottom: 1;
    }}

    TitleInputModal .context-info {{
        width: 100%;
        color: {DROP_TARGET_COLOR};
        margin-bottom: 1;
    }}

    TitleInputModal .error-message {{
        width: 100%;
        color: {NEST_ZONE_COLOR};
        text-style: bold;
    }}

    TitleInputModal .field-label {{
        color: {COMMENT};
    }}

    TitleInputModal .button-container {{
        width: 100%;
        height: auto;
        layout: horizontal;
        align: center middle;
    }}
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", priority=True),
    ]

    def __init__(self, parent_task: Optional[Task] = None, **kwargs) -> None:
        """Initialize the modal.

        Args:
            parent_task: Task receiving a new subtask; None to create a task
        """
        super().__init__(**kwargs)
        self.parent_task = parent_task

    @property
    def mode(self) -> str:
        return "subtask" if self.parent_task is not None else "task"

    def compose(self) -> ComposeResult:
        """Compose the modal layout."""
        with Container():
            header = "➕ Add Subtask" if self.parent_task is not None else "➕ Add Task"
            yield Static(header, classes="modal-header")
            if self.parent_task is not None:
                yield Static(f"Under: {self.parent_task.title}", classes="context-info")
            yield Label("Title:", classes="field-label")
            yield Input(placeholder="What needs doing?", id="title-input")
            yield Static("", id="error-message", classes="error-message")
            with Container(classes="button-container"):
                yield Button("Save [Enter]", id="save-button", variant="success")
                yield Button("Cancel [Esc]", id="cancel-button", variant="error")

    def on_mount(self) -> None:
        logger.info(f"TitleInputModal: Opened in {self.mode} mode")
        self.query_one("#title-input", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-button":
            self.action_save()
        elif event.button.id == "cancel-button":
            self.action_cancel()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "title-input":
            self.action_save()

    def action_save(self) -> None:
        """Post the title and close, or keep the modal open if it is blank."""
        title = self.query_one("#title-input", Input).value.strip()
        if not title:
            logger.warning(f"TitleInputModal: Save rejected, empty title (mode={self.mode})")
            self.query_one("#error-message", Static).update("⚠ Title cannot be empty")
            return

        parent_id = self.parent_task.id if self.parent_task is not None else None
        logger.info(f"TitleInputModal: Saved {self.mode} title='{title[:50]}'")
        self.app.post_message(self.TitleSubmitted(title=title, parent_id=parent_id))
        self.dismiss()

    def action_cancel(self) -> None:
        """Close without saving."""
        logger.info(f"TitleInputModal: Cancelled (mode={self.mode})")
        self.app.post_message(self.TitleCancelled())
        self.dismiss()

    class TitleSubmitted(Message):
        """Message emitted when a title is saved."""

        def __init__(self, title: str, parent_id: Optional[UUID] = None) -> None:
            """Initialize the message.

            Args:
                title: Cleaned title
                parent_id: Task receiving the subtask, or None for a new task
            """
            super().__init__()
            self.title = title
            self.parent_id = parent_id

    class TitleCancelled(Message):
        """Message emitted when the modal is cancelled."""
        pass
