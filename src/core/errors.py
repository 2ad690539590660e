"""Task error taxonomy and classification utilities."""

from enum import Enum

from pydantic import BaseModel


class TaskStoreError(Exception):
    """Base class for errors returned by task store operations."""


class UnauthenticatedError(TaskStoreError):
    """Raised locally when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class RemoteFailureError(TaskStoreError):
    """Raised when the persistence service rejects or fails an operation."""


class AuthenticationError(Exception):
    """Raised by the identity provider when sign-up or sign-in fails."""


class ErrorCategory(Enum):
    """Categories of errors that can occur during task operations."""

    UNAUTHENTICATED = "unauthenticated"
    TASK_NOT_FOUND = "task_not_found"
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_VALIDATION_FAILED = "ERR_VALIDATION_FAILED"
    ERR_PERSISTENCE_FAILED = "ERR_PERSISTENCE_FAILED"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    category: ErrorCategory


_NOT_FOUND_PHRASES = ("not found", "no rows", "does not belong to")
_VALIDATION_PHRASES = ("constraint failed", "check constraint", "not null constraint", "invalid")


def classify_task_error(exception: Exception) -> ErrorResponse:
    """Classify a task store error and return a structured response.

    Args:
        exception: The error carried by an OperationResult

    Returns:
        ErrorResponse with code, message, suggestion, severity and category
    """
    error_str = str(exception).lower()

    if isinstance(exception, UnauthenticatedError):
        return ErrorResponse(
            code=ErrorCode.ERR_UNAUTHENTICATED,
            message="You need to sign in first.",
            suggestion="Sign in and try again.",
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.UNAUTHENTICATED,
        )

    if any(phrase in error_str for phrase in _NOT_FOUND_PHRASES):
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_NOT_FOUND,
            message="That task could not be found.",
            suggestion="Refresh your task list and try again.",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.TASK_NOT_FOUND,
        )

    if any(phrase in error_str for phrase in _VALIDATION_PHRASES):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION_FAILED,
            message="The task was rejected by the server.",
            suggestion="Check the title, description, priority and status values.",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION_FAILED,
        )

    if isinstance(exception, RemoteFailureError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERSISTENCE_FAILED,
            message="Your tasks could not be saved right now.",
            suggestion="Please try again in a moment.",
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.PERSISTENCE_FAILED,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later.",
        severity=ErrorSeverity.MEDIUM,
        category=ErrorCategory.UNKNOWN,
    )
