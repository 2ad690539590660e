"""Update models for database operations."""

from datetime import date
from typing import Any

from pydantic import BaseModel, field_validator

from src.domain.create_models import normalize_description
from src.domain.task import TaskPriority, TaskStatus
from src.domain.validation import check_title


class TaskUpdate(BaseModel):
    """Partial update for a task.

    Only fields that were explicitly set are sent to the database. Setting
    ``description`` or ``due_date`` to None clears it; leaving a field out keeps
    the stored value.
    """

    title: str | None = None
    description: str | None = None
    due_date: date | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Title cannot be cleared")
        message = check_title(v)
        if message:
            raise ValueError(message)
        return v.strip()

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return normalize_description(v)

    @field_validator("priority", "status")
    @classmethod
    def reject_none(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be cleared")
        return v

    def to_record(self) -> dict[str, Any]:
        """Build the update payload containing only the fields that were set."""
        return self.model_dump(mode="json", exclude_unset=True)
