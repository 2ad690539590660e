"""Pure derivations over a task list: search/status filtering and per-status counts."""

from collections.abc import Iterable, Sequence

from src.domain.task import StatusFilter, Task, TaskStatus
from src.models.service_models import TaskCounts


def matches_search(task: Task, search_query: str) -> bool:
    """Case-insensitive substring match against the title or description."""
    if not search_query:
        return True
    needle = search_query.lower()
    if needle in task.title.lower():
        return True
    return task.description is not None and needle in task.description.lower()


def matches_status(task: Task, status_filter: StatusFilter | str) -> bool:
    """True if the filter is ALL or equals the task's status."""
    status_filter = StatusFilter(status_filter)
    return status_filter == StatusFilter.ALL or task.status == status_filter.value


def filter_tasks(
    tasks: Iterable[Task],
    search_query: str = "",
    status_filter: StatusFilter | str = StatusFilter.ALL,
) -> list[Task]:
    """Return the visible tasks, preserving input order."""
    return [task for task in tasks if matches_status(task, status_filter) and matches_search(task, search_query)]


def count_tasks(tasks: Sequence[Task]) -> TaskCounts:
    """Count all tasks and tasks per status over the unfiltered list."""
    return TaskCounts(
        total=len(tasks),
        todo=sum(1 for task in tasks if task.status == TaskStatus.TODO),
        in_progress=sum(1 for task in tasks if task.status == TaskStatus.IN_PROGRESS),
        done=sum(1 for task in tasks if task.status == TaskStatus.DONE),
    )


def empty_state_message(search_query: str, status_filter: StatusFilter | str) -> str:
    """Message to show when no task is visible."""
    if search_query or StatusFilter(status_filter) != StatusFilter.ALL:
        return "No tasks found"
    return "No tasks yet"
