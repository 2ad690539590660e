"""Task domain models and enums."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field


class TaskPriority(StrEnum):
    """How urgent a task is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class TaskStatus(StrEnum):
    """Task lifecycle stage."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


class StatusFilter(StrEnum):
    """Status selector for the task list; ALL disables status filtering."""

    ALL = "all"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @property
    def label(self) -> str:
        if self is StatusFilter.ALL:
            return "All"
        return TaskStatus(self.value).label


_STATUS_LABELS = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.DONE: "Done",
}


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID assigned by the database")
    user_id: str = Field(..., description="ID of the user who owns the task")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Optional task description")
    due_date: date | None = Field(default=None, description="Optional due date (no time component)")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Current lifecycle stage")
    created_at: str = Field(..., description="Creation timestamp (ISO format)")
    updated_at: str = Field(..., description="Last update timestamp (ISO format)")
