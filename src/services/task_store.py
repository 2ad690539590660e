"""Task store: the signed-in user's task list, kept in sync with the database.

A store is bound to one identity for its whole life. When the user changes
(sign-in, sign-out) a new store is built, either directly with
``open_task_store`` or by a ``TaskStoreBinding`` following an ``AuthSession``.

Every operation catches its own failures and returns an ``OperationResult``;
operations that reach the database also emit exactly one notification. The
local list is only reassigned after the database call has succeeded.
"""

import logging
from enum import StrEnum

from pydantic import ValidationError

from src.core import db_client
from src.core.config import constants
from src.core.db_client import DatabaseError, sanitize_param
from src.core.errors import RemoteFailureError, UnauthenticatedError
from src.core.logging import log_with_user_context, span
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskStatus
from src.domain.update_models import TaskUpdate
from src.domain.user import User
from src.models.service_models import OperationResult
from src.services import notification_service
from src.services.auth_service import AuthSession
from src.services.notification_service import NotifyCallback


logger = logging.getLogger(__name__)


class StoreState(StrEnum):
    """Lifecycle of a task store."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class TaskStore:
    """In-memory task list for one user, backed by the tasks collection."""

    def __init__(self, *, user: User | None, notify: NotifyCallback = notification_service.log_notification) -> None:
        self._user = user
        self._notify = notify
        self._tasks: list[Task] = []
        self._state = StoreState.UNINITIALIZED

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def tasks(self) -> list[Task]:
        """Current tasks, newest first. Stale until the store is ready."""
        return list(self._tasks)

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state != StoreState.READY

    def get(self, task_id: str) -> Task | None:
        """Return the local copy of a task, if present."""
        return next((task for task in self._tasks if task.id == task_id), None)

    async def mount(self) -> OperationResult:
        """Load the user's tasks for the first time."""
        return await self.fetch_all()

    async def fetch_all(self) -> OperationResult:
        """Replace the local list with every task the user owns, newest first.

        Without a user the list is emptied and nothing is fetched. On failure the
        local list is left as it was.
        """
        if self._user is None:
            self._tasks = []
            self._state = StoreState.READY
            return OperationResult()

        self._state = StoreState.LOADING
        with span("task_store.fetch_all"):
            try:
                records = await db_client.get_full_list(
                    collection=constants.TASKS_COLLECTION,
                    filter_query=f'user_id = "{sanitize_param(self._user.id)}"',
                    sort="-created_at",
                )
                tasks = [Task.model_validate(record) for record in records]
            except (DatabaseError, ValidationError) as e:
                return self._fail("Error fetching tasks", e)
            else:
                self._tasks = tasks
                log_with_user_context(logger, "info", "Fetched tasks", user_id=self._user.id, count=len(tasks))
                return OperationResult()
            finally:
                self._state = StoreState.READY

    refetch = fetch_all

    async def create(self, data: TaskCreate) -> OperationResult:
        """Insert a task and put it at the front of the local list."""
        if self._user is None:
            return OperationResult(error=UnauthenticatedError())

        with span("task_store.create"):
            try:
                record = await db_client.create_record(
                    collection=constants.TASKS_COLLECTION,
                    data=data.to_record(user_id=self._user.id),
                )
                task = Task.model_validate(record)
            except (DatabaseError, ValidationError) as e:
                return self._fail("Error creating task", e)

        self._tasks = [task, *self._tasks]
        log_with_user_context(logger, "info", "Created task", user_id=self._user.id, task_id=task.id)
        self._notify(notification_service.success("Task created", "Your task has been created successfully."))
        return OperationResult(task=task)

    async def update(self, task_id: str, changes: TaskUpdate) -> OperationResult:
        """Send the fields set on ``changes`` and swap in the stored result.

        Fails when no task with that id belongs to the current user.
        """
        if self._user is None:
            return OperationResult(error=UnauthenticatedError())

        with span("task_store.update"):
            try:
                record = await db_client.update_record(
                    collection=constants.TASKS_COLLECTION,
                    record_id=task_id,
                    data=changes.to_record(),
                    owner_id=self._user.id,
                )
                task = Task.model_validate(record)
            except (DatabaseError, ValidationError) as e:
                return self._fail("Error updating task", e)

        self._tasks = [task if existing.id == task_id else existing for existing in self._tasks]
        log_with_user_context(logger, "info", "Updated task", user_id=self._user.id, task_id=task_id)
        self._notify(notification_service.success("Task updated", "Your task has been updated successfully."))
        return OperationResult(task=task)

    async def change_status(self, task_id: str, status: TaskStatus) -> OperationResult:
        """Quick action: move a task to another status."""
        return await self.update(task_id, TaskUpdate(status=status))

    async def delete(self, task_id: str) -> OperationResult:
        """Hard-delete a task owned by the current user."""
        if self._user is None:
            return OperationResult(error=UnauthenticatedError())

        with span("task_store.delete"):
            try:
                await db_client.delete_record(
                    collection=constants.TASKS_COLLECTION,
                    record_id=task_id,
                    owner_id=self._user.id,
                )
            except DatabaseError as e:
                return self._fail("Error deleting task", e)

        self._tasks = [task for task in self._tasks if task.id != task_id]
        log_with_user_context(logger, "info", "Deleted task", user_id=self._user.id, task_id=task_id)
        self._notify(notification_service.success("Task deleted", "Your task has been deleted successfully."))
        return OperationResult()

    def purge(self) -> None:
        """Forget every local task (on sign-out)."""
        self._tasks = []

    def _fail(self, title: str, exc: Exception) -> OperationResult:
        user_id = self._user.id if self._user else None
        log_with_user_context(logger, "error", title, user_id=user_id, error=str(exc))
        self._notify(notification_service.failure(title, str(exc)))
        error = RemoteFailureError(str(exc))
        error.__cause__ = exc
        return OperationResult(error=error)


async def open_task_store(
    user: User | None,
    *,
    notify: NotifyCallback = notification_service.log_notification,
) -> TaskStore:
    """Build a store scoped to ``user`` and load its tasks."""
    store = TaskStore(user=user, notify=notify)
    await store.mount()
    return store


class TaskStoreBinding:
    """Keeps a task store scoped to whoever is signed in on an AuthSession.

    Each identity change purges the current store and replaces it with a fresh,
    unmounted one; ``ready()`` mounts it on first use.
    """

    def __init__(
        self,
        session: AuthSession,
        *,
        notify: NotifyCallback = notification_service.log_notification,
    ) -> None:
        self._notify = notify
        self._store = TaskStore(user=session.current_user, notify=notify)
        self._unsubscribe = session.subscribe(self._on_identity_change)

    @property
    def store(self) -> TaskStore:
        return self._store

    async def ready(self) -> TaskStore:
        """Return the current store, loading it first if it was never mounted."""
        store = self._store
        if store.state == StoreState.UNINITIALIZED:
            await store.mount()
        return store

    def close(self) -> None:
        """Stop following the session and drop local tasks."""
        self._unsubscribe()
        self._store.purge()

    def _on_identity_change(self, user: User | None) -> None:
        self._store.purge()
        self._store = TaskStore(user=user, notify=self._notify)
        logger.info("Task store rescoped", extra={"user_id": user.id if user else None})
