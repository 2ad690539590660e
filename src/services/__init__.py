from src.services import (
    auth_service,
    notification_service,
    task_filters,
    task_store,
)


__all__ = [
    "auth_service",
    "notification_service",
    "task_filters",
    "task_store",
]
