"""Pydantic models for creating records in database."""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.domain.task import TaskPriority, TaskStatus
from src.domain.validation import check_description, check_title


def normalize_description(v: str | None) -> str | None:
    """Trim a description, treating blank text as no description."""
    if v is None:
        return None
    message = check_description(v)
    if message:
        raise ValueError(message)
    return v.strip() or None


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record."""

    title: str = Field(..., description="Task title (trimmed, 1-200 characters)")
    description: str | None = Field(default=None, description="Optional description (max 1000 characters)")
    due_date: date | None = Field(default=None, description="Optional due date")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Initial status")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate the title is present and short enough, then trim it."""
        message = check_title(v)
        if message:
            raise ValueError(message)
        return v.strip()

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        """Validate the description length and collapse blank text to None."""
        return normalize_description(v)

    def to_record(self, *, user_id: str) -> dict[str, Any]:
        """Build the insert payload for the tasks collection."""
        return {"user_id": user_id, **self.model_dump(mode="json")}
