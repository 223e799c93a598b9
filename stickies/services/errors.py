"""Exceptions raised by the board services."""


class BoardError(Exception):
    """Base exception for board errors."""
    pass


class ValidationError(BoardError):
    """Raised before any mutation when a requested change is not allowed."""
    pass


class NestValidationError(ValidationError):
    """Raised when a task cannot be nested under the requested target."""
    pass


class TaskNotFoundError(BoardError):
    """Raised when a task id is not part of the current view."""
    pass


class SubtaskNotFoundError(TaskNotFoundError):
    """Raised when a subtask id is not part of its owner's list."""
    pass


class PersistenceError(BoardError):
    """Raised when the store fails to load or to apply an atomic write."""
    pass


class CommitInProgressError(BoardError):
    """Raised when a commit is requested while another one is in flight."""
    pass


class DragStateError(BoardError):
    """Raised on an invalid drag gesture transition."""
    pass
