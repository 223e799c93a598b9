"""Main Textual application for Stickies.

Shows the day's tasks as a single ordered board. Tasks are reordered or
nested with a keyboard drag gesture; every change is applied immediately and
saved in the background, and a failed save reloads the board from the store.
"""

from datetime import timedelta
from typing import Iterable, List, Optional, Set
from uuid import UUID

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.widgets import Footer, Header

from stickies.config import Config
from stickies.database import DatabaseManager, get_database_manager
from stickies.logging_config import get_logger
from stickies.models import Subtask, Task, TaskMode
from stickies.services.board import CommitOutcome, TodayBoard
from stickies.services.drag_controller import DropKind, nest_zone_id
from stickies.services.errors import (
    DragStateError,
    NestValidationError,
    PersistenceError,
    TaskNotFoundError,
    ValidationError,
)
from stickies.store import SqlAlchemyStore, Store
from stickies.ui.components.board_view import BoardView
from stickies.ui.components.title_modal import TitleInputModal
from stickies.ui.constants import (
    BOARD_ID,
    MAX_TITLE_LENGTH_IN_NOTIFICATION,
    NOTIFICATION_TIMEOUT_LONG,
    NOTIFICATION_TIMEOUT_MEDIUM,
    NOTIFICATION_TIMEOUT_SHORT,
    SCREEN_STACK_SIZE_MAIN_APP,
)
from stickies.ui.keybindings import get_all_bindings, move_index
from stickies.ui.theme import BACKGROUND, FOREGROUND, SELECTION

# Initialize logger for this module
logger = get_logger(__name__)


class StickiesApp(App):
    """Terminal board for today's tasks."""

    CSS = f"""
    Screen {{
        background: {BACKGROUND};
        color: {FOREGROUND};
    }}

    Footer {{
        background: {SELECTION};
    }}
    """

    BINDINGS = get_all_bindings()

    # ==============================================================================
    # LIFECYCLE METHODS
    # ==============================================================================

    def __init__(
        self,
        store: Optional[Store] = None,
        config: Optional[Config] = None,
        **kwargs,
    ) -> None:
        """Initialize the Stickies application.

        Args:
            store: Document store; a SQLite store from the config is used if omitted
            config: Application configuration
        """
        super().__init__(**kwargs)
        self.title = "Stickies - Today"
        self._config = config or Config()
        self._store = store
        self._db_manager: Optional[DatabaseManager] = None
        self.board: Optional[TodayBoard] = None
        self._cursor = 0
        self._subtask_cursor: Optional[int] = None
        self._marked: Set[UUID] = set()
        self._hover_index = 0
        self._nest_mode = False

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Header()
        with Container(id="board-container"):
            yield BoardView(id=BOARD_ID)
        yield Footer()

    async def on_mount(self) -> None:
        """Open the store and load the board."""
        logger.info("Stickies application mounted, initializing...")

        if self._store is None:
            store_config = self._config.get_store_config()
            self._db_manager = get_database_manager(store_config['database_url'])
            await self._db_manager.initialize()
            self._store = SqlAlchemyStore(self._db_manager)
            logger.info("Database initialized")

        self.board = TodayBoard.from_config(
            self._store,
            self._config,
            on_change_callback=self._refresh_board,
        )
        await self._load_board()
        logger.info("Stickies application ready")

    async def on_unmount(self) -> None:
        """Release the database connection if this app opened it."""
        logger.info("Stickies application shutting down")
        if self._db_manager is not None:
            await self._db_manager.close()

    def check_action(self, action: str, parameters: tuple) -> Optional[bool]:
        """Keep board keys away from the board while a modal is open."""
        if action != "quit" and len(self.screen_stack) > SCREEN_STACK_SIZE_MAIN_APP:
            return False
        return True

    # ==============================================================================
    # HELPERS
    # ==============================================================================

    async def _load_board(self) -> None:
        try:
            await self.board.load()
        except PersistenceError:
            logger.error("Failed to load board", exc_info=True)
            self.notify("Could not load tasks", severity="error", timeout=NOTIFICATION_TIMEOUT_LONG)
        self._refresh_board()

    def _rows(self) -> List[Task]:
        if self.board is None:
            return []
        return self.board.display_order()

    def _selected_task(self) -> Optional[Task]:
        rows = self._rows()
        if not rows:
            return None
        self._cursor = move_index(self._cursor, 0, len(rows))
        return rows[self._cursor]

    def _visible_subtasks(self, task: Optional[Task]) -> List[Subtask]:
        if task is None or self.board is None or not self.board.is_expanded(task.id):
            return []
        return task.subtasks

    def _selected_subtask(self, task: Optional[Task]) -> Optional[Subtask]:
        subtasks = self._visible_subtasks(task)
        if self._subtask_cursor is None or not subtasks:
            return None
        return subtasks[min(self._subtask_cursor, len(subtasks) - 1)]

    def _refresh_board(self) -> None:
        """Push the current board state to the view."""
        if self.board is None:
            return
        rows = self._rows()
        controller = self.board.controller
        selected_index = move_index(self._cursor, 0, len(rows))
        subtask_index: Optional[int] = None
        if controller.is_dragging:
            for index, task in enumerate(rows):
                if task.id == controller.active_id:
                    selected_index = index
                    break
        elif rows:
            subtasks = self._visible_subtasks(rows[selected_index])
            if self._subtask_cursor is not None and subtasks:
                subtask_index = min(self._subtask_cursor, len(subtasks) - 1)
            self._subtask_cursor = subtask_index
        self._marked &= {task.id for task in rows}

        try:
            view = self.query_one(f"#{BOARD_ID}", BoardView)
        except NoMatches:
            # Not composed yet
            return
        view.show(
            rows,
            selected_index=selected_index,
            expanded={task.id for task in rows if self.board.is_expanded(task.id)},
            dragging_id=controller.active_id,
            hover=controller.hover,
            marked=self._marked,
            subtask_index=subtask_index,
        )

        stats = self.board.stats()
        mode = self.board.mode_filter.value
        self.sub_title = f"{mode} · {stats.progress_string or '0/0'} done"

    def _notify_not_saved(self, what: str) -> None:
        """Explain why the last board operation wrote nothing."""
        outcome = self.board.last_outcome
        if outcome is CommitOutcome.RECONCILED:
            self.notify(
                f"Could not save {what}; board reloaded",
                severity="warning",
                timeout=NOTIFICATION_TIMEOUT_MEDIUM,
            )
        elif outcome is CommitOutcome.REJECTED:
            self.notify(
                f"Still saving the previous change; {what} was not applied",
                severity="warning",
                timeout=NOTIFICATION_TIMEOUT_SHORT,
            )
        else:
            logger.debug(f"Nothing written for {what}")

    @staticmethod
    def _short_title(title: str) -> str:
        if len(title) <= MAX_TITLE_LENGTH_IN_NOTIFICATION:
            return title
        return title[:MAX_TITLE_LENGTH_IN_NOTIFICATION] + "..."

    def _update_hover(self) -> None:
        incomplete = self.board.incomplete
        if not incomplete:
            return
        self._hover_index = move_index(self._hover_index, 0, len(incomplete))
        target = incomplete[self._hover_index]
        target_id = nest_zone_id(target.id) if self._nest_mode else str(target.id)
        self.board.controller.over(target_id)
        self._refresh_board()

    # ==============================================================================
    # NAVIGATION
    # ==============================================================================

    def _move(self, delta: int) -> None:
        if self.board is None:
            return
        if self.board.controller.is_dragging:
            self._hover_index = move_index(self._hover_index, delta, len(self.board.incomplete))
            self._update_hover()
            return

        rows = self._rows()
        task = self._selected_task()
        if task is None:
            return

        if delta > 0:
            current = -1 if self._subtask_cursor is None else self._subtask_cursor
            if current + 1 < len(self._visible_subtasks(task)):
                self._subtask_cursor = current + 1
            elif self._cursor < len(rows) - 1:
                self._cursor += 1
                self._subtask_cursor = None
        elif self._subtask_cursor is not None:
            self._subtask_cursor = self._subtask_cursor - 1 if self._subtask_cursor > 0 else None
        elif self._cursor > 0:
            self._cursor -= 1
            above = self._visible_subtasks(rows[self._cursor])
            self._subtask_cursor = len(above) - 1 if above else None

        self._refresh_board()

    def action_navigate_up(self) -> None:
        """Move the cursor, or the drop target while dragging, up."""
        self._move(-1)

    def action_navigate_down(self) -> None:
        """Move the cursor, or the drop target while dragging, down."""
        self._move(1)

    # ==============================================================================
    # DRAG GESTURE
    # ==============================================================================

    def action_grab(self) -> None:
        """Start dragging the selected task (G key)."""
        task = self._selected_task()
        if task is None or self.board is None:
            return
        if task.completed:
            self.notify("Completed tasks cannot be moved", severity="warning",
                        timeout=NOTIFICATION_TIMEOUT_SHORT)
            return

        try:
            self.board.controller.start(task.id)
        except DragStateError as e:
            logger.debug(f"Grab ignored: {e}")
            return

        self._nest_mode = False
        self._subtask_cursor = None
        self._hover_index = self.board.collection.index_of(task.id)
        self._update_hover()

    def action_toggle_nest_zone(self) -> None:
        """Switch between dropping beside and dropping into the target (N key)."""
        if self.board is None or not self.board.controller.is_dragging:
            return
        self._nest_mode = not self._nest_mode
        self._update_hover()

    async def action_drop(self) -> None:
        """Drop the dragged task on the current target (Enter key)."""
        if self.board is None or not self.board.controller.is_dragging:
            return

        dragged = self.board.collection.find(self.board.controller.active_id)
        self._nest_mode = False
        try:
            action = await self.board.controller.drop()
        except NestValidationError as e:
            self.notify(str(e), severity="warning", timeout=NOTIFICATION_TIMEOUT_MEDIUM)
            self._refresh_board()
            return

        if action.kind is DropKind.CANCEL:
            self._refresh_board()
            return

        if not action.saved:
            self._notify_not_saved("the move")
        elif action.kind is DropKind.NEST and dragged is not None:
            self.notify(f"Nested '{self._short_title(dragged.title)}'",
                        timeout=NOTIFICATION_TIMEOUT_SHORT)
        elif action.kind is DropKind.REORDER:
            try:
                self._cursor = self.board.collection.index_of(action.active_id)
            except TaskNotFoundError:
                logger.debug(f"Dropped task {action.active_id} left the board")
        self._refresh_board()

    def action_cancel_drag(self) -> None:
        """Cancel the drag gesture (Escape key)."""
        if self.board is None:
            return
        self.board.controller.cancel()
        self._nest_mode = False
        self._refresh_board()

    # ==============================================================================
    # TASK ACTIONS
    # ==============================================================================

    async def action_toggle_completion(self) -> None:
        """Toggle the selected subtask, or the selected task (Space key)."""
        if self.board is None or self.board.controller.is_dragging:
            return
        task = self._selected_task()
        if task is None:
            return

        subtask = self._selected_subtask(task)
        if subtask is not None:
            if not await self.board.toggle_subtask(task.id, subtask.id):
                self._notify_not_saved("the subtask")
                return
            status = "reopened" if subtask.completed else "completed"
            self.notify(f"Subtask {status}", timeout=NOTIFICATION_TIMEOUT_SHORT)
            return

        was_completed = task.completed
        task_id: UUID = task.id
        if not await self.board.toggle_complete(task_id):
            self._notify_not_saved("the task")
            return

        status = "reopened" if was_completed else "completed"
        self.notify(f"Task {status}", timeout=NOTIFICATION_TIMEOUT_SHORT)

    def action_toggle_expanded(self) -> None:
        """Show or hide the selected task's subtasks (E key)."""
        task = self._selected_task()
        if task is None or self.board is None:
            return
        if not self.board.toggle_expanded(task.id):
            self._subtask_cursor = None
        self._refresh_board()

    def action_add_task(self) -> None:
        """Open the title modal for a new task (A key)."""
        if self.board is None or self.board.controller.is_dragging:
            return
        self.push_screen(TitleInputModal())

    def action_add_subtask(self) -> None:
        """Open the title modal for a subtask of the selected task (S key)."""
        if self.board is None or self.board.controller.is_dragging:
            return
        task = self._selected_task()
        if task is None:
            return
        self.push_screen(TitleInputModal(parent_task=task))

    async def on_title_input_modal_title_submitted(
        self, message: TitleInputModal.TitleSubmitted
    ) -> None:
        """Create the task or subtask named in the modal.

        Args:
            message: TitleSubmitted message from the title modal
        """
        if self.board is None:
            return

        what = "the task" if message.parent_id is None else "the subtask"
        try:
            if message.parent_id is None:
                saved = await self.board.add_task(message.title)
            else:
                saved = await self.board.add_subtask(message.parent_id, message.title)
        except ValidationError as e:
            self.notify(str(e), severity="warning", timeout=NOTIFICATION_TIMEOUT_MEDIUM)
            return

        if not saved:
            self._notify_not_saved(what)
            return

        if message.parent_id is None:
            self._cursor = len(self.board.incomplete) - 1
            self._subtask_cursor = None
            self._refresh_board()
        self.notify(f"Added '{self._short_title(message.title)}'",
                    timeout=NOTIFICATION_TIMEOUT_SHORT)

    async def on_title_input_modal_title_cancelled(
        self, message: TitleInputModal.TitleCancelled
    ) -> None:
        """Handle TitleCancelled message from the title modal."""
        pass

    # ==============================================================================
    # BULK ACTIONS
    # ==============================================================================

    def _bulk_targets(self) -> List[Task]:
        """Marked tasks, or the selected task when nothing is marked."""
        rows = self._rows()
        marked = [task for task in rows if task.id in self._marked]
        if marked:
            return marked
        task = self._selected_task()
        return [task] if task is not None else []

    def _finish_bulk(self, saved: bool, done: str, what: str) -> None:
        if saved:
            self._marked.clear()
            self.notify(done, timeout=NOTIFICATION_TIMEOUT_SHORT)
        elif self.board.last_outcome is CommitOutcome.UNCHANGED:
            self.notify("Nothing to change", timeout=NOTIFICATION_TIMEOUT_SHORT)
        else:
            self._notify_not_saved(what)
        self._refresh_board()

    @staticmethod
    def _ids(tasks: Iterable[Task]) -> List[UUID]:
        return [task.id for task in tasks]

    def action_toggle_mark(self) -> None:
        """Mark or unmark the selected task for a bulk action (V key)."""
        task = self._selected_task()
        if task is None or self.board is None:
            return
        if task.id in self._marked:
            self._marked.discard(task.id)
        else:
            self._marked.add(task.id)
        self._refresh_board()

    async def action_bulk_complete(self) -> None:
        """Complete the marked tasks (C key)."""
        if self.board is None or self.board.controller.is_dragging:
            return
        targets = self._bulk_targets()
        if not targets:
            return
        saved = await self.board.bulk_complete(self._ids(targets))
        self._finish_bulk(saved, f"Completed {len(targets)} task(s)", "the completions")

    async def action_bulk_switch_mode(self) -> None:
        """Move the marked tasks to the other mode (P key)."""
        if self.board is None or self.board.controller.is_dragging:
            return
        targets = self._bulk_targets()
        if not targets:
            return
        mode = (
            TaskMode.PROFESSIONAL
            if targets[0].mode is TaskMode.PERSONAL
            else TaskMode.PERSONAL
        )
        saved = await self.board.bulk_set_mode(self._ids(targets), mode)
        self._finish_bulk(saved, f"Moved {len(targets)} task(s) to {mode.value}", "the mode change")

    async def action_bulk_move_to_tomorrow(self) -> None:
        """Replan the marked tasks for tomorrow (D key)."""
        if self.board is None or self.board.controller.is_dragging:
            return
        targets = self._bulk_targets()
        if not targets:
            return
        tomorrow = self.board.today() + timedelta(days=1)
        saved = await self.board.bulk_move_to_date(self._ids(targets), tomorrow)
        self._finish_bulk(saved, f"Moved {len(targets)} task(s) to tomorrow", "the move")

    # ==============================================================================
    # BOARD ACTIONS
    # ==============================================================================

    def action_cycle_mode_filter(self) -> None:
        """Cycle the mode filter all -> personal -> professional (M key)."""
        if self.board is None or self.board.controller.is_dragging:
            return
        mode_filter = self.board.cycle_mode_filter()
        self._cursor = 0
        self._subtask_cursor = None
        self._refresh_board()
        self.notify(f"Showing {mode_filter.value} tasks", timeout=NOTIFICATION_TIMEOUT_SHORT)

    async def action_reload(self) -> None:
        """Reload the board from the store (R key)."""
        if self.board is None:
            return
        self.board.controller.cancel()
        await self._load_board()
