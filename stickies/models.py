"""
Pydantic models for the Stickies board.

Defines the persisted task document, its embedded subtasks, and the small
enums the board filters and sorts by.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field, field_validator

SUBTASK_ID_PREFIX = "st_"


def new_subtask_id() -> str:
    """Generate a subtask id. Subtask ids never collide with task UUIDs."""
    return f"{SUBTASK_ID_PREFIX}{uuid4().hex}"


class TaskMode(str, Enum):
    """Partition tag separating personal and professional tasks."""
    PERSONAL = "personal"
    PROFESSIONAL = "professional"


class TaskPriority(str, Enum):
    """Task priority, used as the fallback ordering."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 1, "medium": 2, "high": 3}[self.value]


class ModeFilter(str, Enum):
    """Which tasks the board shows."""
    ALL = "all"
    PERSONAL = "personal"
    PROFESSIONAL = "professional"

    def matches(self, task: "Task") -> bool:
        """
        Check whether a task is visible under this filter.

        Args:
            task: Task to check

        Returns:
            True if the task belongs in the filtered view
        """
        if self is ModeFilter.ALL:
            return True
        return task.mode.value == self.value

    def next(self) -> "ModeFilter":
        """Cycle all -> personal -> professional -> all."""
        members = list(ModeFilter)
        return members[(members.index(self) + 1) % len(members)]

    def default_mode(self) -> TaskMode:
        """Mode given to tasks created while this filter is active."""
        if self is ModeFilter.PROFESSIONAL:
            return TaskMode.PROFESSIONAL
        return TaskMode.PERSONAL


class Subtask(BaseModel):
    """
    A checklist item embedded in a task.

    Subtasks have no position; their order is the list order in the owner.
    """

    id: str = Field(default_factory=new_subtask_id, description="Subtask identifier")
    title: str = Field(..., min_length=1, max_length=500, description="Subtask title")
    completed: bool = Field(default=False, description="Whether the subtask is done")

    def toggled(self) -> "Subtask":
        """Return a copy with the completion flag flipped."""
        return self.model_copy(update={"completed": not self.completed})


class Task(BaseModel):
    """
    A top-level task on the board.

    ``position`` is only meaningful while the task is incomplete and not
    deleted. A task nested into another task is soft-deleted, never removed.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the task")
    owner_id: str = Field(..., min_length=1, description="Owner of the task")
    title: str = Field(..., min_length=1, max_length=500, description="Task title")
    description: str = Field(default="", max_length=5000, description="Optional details")

    completed: bool = Field(default=False, description="Whether the task is completed")
    position: int = Field(default=0, ge=0, description="Rank among incomplete tasks")
    subtasks: List[Subtask] = Field(default_factory=list, description="Embedded checklist")
    is_deleted: bool = Field(default=False, description="Soft-delete flag")

    project_id: Optional[str] = Field(default=None, description="Optional grouping key")
    mode: TaskMode = Field(default=TaskMode.PERSONAL, description="Personal/professional tag")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Fallback ordering")
    start_date: Optional[date] = Field(default=None, description="Day the task is planned for")

    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    completed_at: Optional[datetime] = Field(default=None, description="Completion timestamp")

    class Config:
        """Pydantic configuration."""
        json_schema_extra = {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174001",
                "owner_id": "local",
                "title": "Write release notes",
                "completed": False,
                "position": 0,
                "subtasks": [{"id": "st_1", "title": "Collect changelog", "completed": False}],
                "is_deleted": False,
                "project_id": None,
                "mode": "professional",
                "priority": "high",
                "start_date": "2025-01-14",
            }
        }

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject titles that are only whitespace."""
        if not v.strip():
            raise ValueError("Task title cannot be blank")
        return v

    @computed_field
    @property
    def subtask_count(self) -> int:
        """Total number of subtasks."""
        return len(self.subtasks)

    @computed_field
    @property
    def completed_subtask_count(self) -> int:
        """Number of completed subtasks."""
        return sum(1 for subtask in self.subtasks if subtask.completed)

    @computed_field
    @property
    def progress_string(self) -> str:
        """
        Subtask progress such as "2/5".

        Returns:
            Progress string, or empty string when there are no subtasks
        """
        if not self.subtasks:
            return ""
        return f"{self.completed_subtask_count}/{self.subtask_count}"

    def get_subtask(self, subtask_id: str) -> Optional[Subtask]:
        """Find an embedded subtask by id."""
        for subtask in self.subtasks:
            if subtask.id == subtask_id:
                return subtask
        return None

    def is_planned_for(self, day: date) -> bool:
        """Check whether the task is planned for the given day."""
        return self.start_date == day

    def mark_completed(self, at: Optional[datetime] = None) -> None:
        """Mark the task as completed with timestamp (defaults to now)."""
        self.completed = True
        self.completed_at = at or datetime.utcnow()

    def mark_incomplete(self) -> None:
        """Mark the task as incomplete, removing completion timestamp."""
        self.completed = False
        self.completed_at = None
