"""Field-level validation for task input, shared by forms and the task models."""

from pydantic import BaseModel

from src.core.config import constants


TITLE_REQUIRED = "Title is required"
TITLE_TOO_LONG = f"Title must be less than {constants.TITLE_MAX_LENGTH} characters"
DESCRIPTION_TOO_LONG = f"Description must be less than {constants.DESCRIPTION_MAX_LENGTH} characters"


class FieldViolation(BaseModel):
    """A single problem with one submitted field."""

    field: str
    message: str


def check_title(title: str) -> str | None:
    """Return the violation message for a title, or None if it is valid."""
    stripped = title.strip()
    if not stripped:
        return TITLE_REQUIRED
    if len(stripped) > constants.TITLE_MAX_LENGTH:
        return TITLE_TOO_LONG
    return None


def check_description(description: str | None) -> str | None:
    """Return the violation message for a description, or None if it is valid."""
    if description is not None and len(description.strip()) > constants.DESCRIPTION_MAX_LENGTH:
        return DESCRIPTION_TOO_LONG
    return None


def validate_task_fields(
    *,
    title: str | None = None,
    description: str | None = None,
    check_title_field: bool = True,
) -> list[FieldViolation]:
    """Validate raw task form input.

    Args:
        title: Submitted title (None counts as empty when the title is checked)
        description: Submitted description, if any
        check_title_field: Set to False for partial updates that leave the title alone

    Returns:
        List of violations, empty when the input can be submitted
    """
    violations = []

    if check_title_field:
        message = check_title(title or "")
        if message:
            violations.append(FieldViolation(field="title", message=message))

    message = check_description(description)
    if message:
        violations.append(FieldViolation(field="description", message=message))

    return violations
