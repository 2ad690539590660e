"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from src.domain.task import Task


class NotificationVariant(StrEnum):
    """Visual treatment of a notification."""

    NORMAL = "normal"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """Transient user-facing message emitted by the task store."""

    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.NORMAL


class OperationResult(BaseModel):
    """Outcome of a task store operation; ``error`` is None on success."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: Exception | None = None
    task: Task | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskCounts(BaseModel):
    """Number of tasks overall and per status."""

    total: int
    todo: int
    in_progress: int
    done: int
