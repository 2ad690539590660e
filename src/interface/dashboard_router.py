"""JSON endpoints for signing in and managing the signed-in user's tasks."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import BaseModel, ValidationError

from src.core.config import constants, settings
from src.core.db_client import DatabaseError
from src.core.errors import AuthenticationError, ErrorCategory, classify_task_error
from src.domain.create_models import TaskCreate
from src.domain.task import StatusFilter, Task, TaskStatus
from src.domain.update_models import TaskUpdate
from src.domain.user import User
from src.domain.validation import validate_task_fields
from src.models.service_models import Notification, OperationResult, TaskCounts
from src.services import auth_service
from src.services.auth_service import AuthSession
from src.services.notification_service import NotificationQueue
from src.services.task_filters import count_tasks, empty_state_message, filter_tasks
from src.services.task_store import TaskStore, TaskStoreBinding


logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"])

HTTP_UNPROCESSABLE = 422

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="user-session")

_ERROR_STATUS = {
    ErrorCategory.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorCategory.TASK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.VALIDATION_FAILED: HTTP_UNPROCESSABLE,
    ErrorCategory.PERSISTENCE_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class Credentials(BaseModel):
    """Email and password submitted to sign up or sign in."""

    email: str
    password: str


class StatusChange(BaseModel):
    status: TaskStatus


class TaskView(BaseModel):
    """Task list as shown on the dashboard."""

    tasks: list[Task]
    counts: TaskCounts
    empty_message: str | None
    loading: bool
    notifications: list[Notification]


class TaskMutation(BaseModel):
    task: Task | None
    notifications: list[Notification]


@dataclass
class UserWorkspace:
    """Per-user session state kept in memory until logout or until it goes idle."""

    session: AuthSession
    binding: TaskStoreBinding
    notifications: NotificationQueue
    last_seen: float = field(default_factory=time.monotonic)


_workspaces: dict[str, UserWorkspace] = {}
_clock = time.monotonic


def _evict_idle_workspaces(now: float) -> None:
    """Close workspaces untouched for longer than a session cookie can live."""
    idle = [
        user_id
        for user_id, workspace in _workspaces.items()
        if now - workspace.last_seen > settings.session_max_age_seconds
    ]
    for user_id in idle:
        close_workspace(user_id)
        logger.info("workspace_evicted", extra={"user_id": user_id})


def get_workspace(user: User) -> UserWorkspace:
    """Return the user's workspace, creating it on first use."""
    now = _clock()
    _evict_idle_workspaces(now)
    workspace = _workspaces.get(user.id)
    if workspace is None:
        session = AuthSession(user)
        notifications = NotificationQueue()
        workspace = UserWorkspace(
            session=session,
            binding=TaskStoreBinding(session, notify=notifications),
            notifications=notifications,
        )
        _workspaces[user.id] = workspace
    workspace.last_seen = now
    return workspace


def close_workspace(user_id: str) -> None:
    """Sign the user out of their workspace and discard it."""
    workspace = _workspaces.pop(user_id, None)
    if workspace is None:
        return
    workspace.session.sign_out()
    workspace.binding.close()


def set_session_cookie(response: Response, user: User) -> None:
    """Set the signed session cookie on a response."""
    response.set_cookie(
        key=constants.SESSION_COOKIE_NAME,
        value=serializer.dumps({"id": user.id, "email": user.email}),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.session_max_age_seconds,
    )


async def require_user(request: Request) -> User:
    """Resolve the signed-in user from the session cookie, or answer 401."""
    session_token = request.cookies.get(constants.SESSION_COOKIE_NAME)
    if not session_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        session_data = serializer.loads(session_token, max_age=settings.session_max_age_seconds)
        return User.model_validate(session_data)
    except (BadSignature, SignatureExpired, ValidationError) as err:
        logger.warning("session_invalid", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated") from err


async def current_store(user: User = Depends(require_user)) -> TaskStore:
    return await get_workspace(user).binding.ready()


def _raise_for_result(result: OperationResult, workspace: UserWorkspace) -> None:
    if result.error is None:
        return
    response = classify_task_error(result.error)
    raise HTTPException(
        status_code=_ERROR_STATUS[response.category],
        detail={
            "error": response.model_dump(mode="json"),
            "notifications": [n.model_dump(mode="json") for n in workspace.notifications.drain()],
        },
    )


def _raise_violations(violations: list[dict[str, Any]]) -> NoReturn:
    raise HTTPException(status_code=HTTP_UNPROCESSABLE, detail={"violations": violations})


def _text(body: dict[str, Any], key: str) -> str | None:
    value = body.get(key)
    return value if isinstance(value, str) else None


def _field_errors(err: ValidationError) -> list[dict[str, Any]]:
    return [{"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]} for e in err.errors()]


@router.post("/auth/signup", status_code=status.HTTP_201_CREATED)
async def post_signup(credentials: Credentials, response: Response) -> User:
    """Create an account and start a session."""
    try:
        user = await auth_service.sign_up(email=credentials.email, password=credentials.password)
    except (AuthenticationError, ValueError) as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    except DatabaseError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Accounts are unavailable"
        ) from err

    set_session_cookie(response, user)
    return user


@router.post("/auth/login")
async def post_login(credentials: Credentials, response: Response) -> User:
    """Authenticate and start a session."""
    try:
        user = await auth_service.sign_in(email=credentials.email, password=credentials.password)
    except AuthenticationError as err:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(err)) from err
    except DatabaseError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Accounts are unavailable"
        ) from err

    set_session_cookie(response, user)
    return user


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def post_logout(response: Response, user: User = Depends(require_user)) -> None:
    """Purge the user's tasks from memory and end the session."""
    close_workspace(user.id)
    response.delete_cookie(key=constants.SESSION_COOKIE_NAME, httponly=True, samesite="lax")
    logger.info("logout_success", extra={"user_id": user.id})


@router.get("/tasks")
async def get_tasks(
    q: str = "",
    status_filter: StatusFilter = Query(StatusFilter.ALL, alias="status"),
    user: User = Depends(require_user),
    store: TaskStore = Depends(current_store),
) -> TaskView:
    """Visible tasks for the given search text and status, with counts over all tasks."""
    tasks = store.tasks
    visible = filter_tasks(tasks, q, status_filter)
    return TaskView(
        tasks=visible,
        counts=count_tasks(tasks),
        empty_message=None if visible else empty_state_message(q, status_filter),
        loading=store.loading,
        notifications=get_workspace(user).notifications.drain(),
    )


@router.post("/tasks/refetch")
async def post_refetch(user: User = Depends(require_user), store: TaskStore = Depends(current_store)) -> TaskView:
    """Reload the task list from the database."""
    await store.refetch()
    tasks = store.tasks
    return TaskView(
        tasks=tasks,
        counts=count_tasks(tasks),
        empty_message=None if tasks else empty_state_message("", StatusFilter.ALL),
        loading=store.loading,
        notifications=get_workspace(user).notifications.drain(),
    )


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def post_task(
    body: dict[str, Any] = Body(...),
    user: User = Depends(require_user),
    store: TaskStore = Depends(current_store),
) -> TaskMutation:
    """Create a task."""
    violations = validate_task_fields(title=_text(body, "title"), description=_text(body, "description"))
    if violations:
        _raise_violations([v.model_dump() for v in violations])
    try:
        data = TaskCreate.model_validate(body)
    except ValidationError as err:
        _raise_violations(_field_errors(err))

    workspace = get_workspace(user)
    result = await store.create(data)
    _raise_for_result(result, workspace)
    return TaskMutation(task=result.task, notifications=workspace.notifications.drain())


@router.patch("/tasks/{task_id}")
async def patch_task(
    task_id: str,
    body: dict[str, Any] = Body(...),
    user: User = Depends(require_user),
    store: TaskStore = Depends(current_store),
) -> TaskMutation:
    """Update only the fields present in the body; null clears description or due date."""
    violations = validate_task_fields(
        title=_text(body, "title"),
        description=_text(body, "description"),
        check_title_field="title" in body,
    )
    if violations:
        _raise_violations([v.model_dump() for v in violations])
    try:
        changes = TaskUpdate.model_validate(body)
    except ValidationError as err:
        _raise_violations(_field_errors(err))

    workspace = get_workspace(user)
    result = await store.update(task_id, changes)
    _raise_for_result(result, workspace)
    return TaskMutation(task=result.task, notifications=workspace.notifications.drain())


@router.post("/tasks/{task_id}/status")
async def post_task_status(
    task_id: str,
    change: StatusChange,
    user: User = Depends(require_user),
    store: TaskStore = Depends(current_store),
) -> TaskMutation:
    """Move a task to another status."""
    workspace = get_workspace(user)
    result = await store.change_status(task_id, change.status)
    _raise_for_result(result, workspace)
    return TaskMutation(task=result.task, notifications=workspace.notifications.drain())


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: str,
    user: User = Depends(require_user),
    store: TaskStore = Depends(current_store),
) -> TaskMutation:
    """Delete a task."""
    workspace = get_workspace(user)
    result = await store.delete(task_id)
    _raise_for_result(result, workspace)
    return TaskMutation(task=None, notifications=workspace.notifications.drain())
