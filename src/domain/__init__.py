"""Domain models and DTOs."""

from src.domain.create_models import TaskCreate
from src.domain.task import StatusFilter, Task, TaskPriority, TaskStatus
from src.domain.update_models import TaskUpdate
from src.domain.user import User
from src.domain.validation import FieldViolation, validate_task_fields


__all__ = [
    "FieldViolation",
    "StatusFilter",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskStatus",
    "TaskUpdate",
    "User",
    "validate_task_fields",
]
