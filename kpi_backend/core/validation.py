from __future__ import annotations


class TrackerError(Exception):
    """Base class for errors raised by the tracker."""


class ValidationError(TrackerError):
    """Raised when a request is missing a required field or carries a malformed value."""


class NotFoundError(TrackerError):
    """Raised when an id does not resolve to a record."""


class InvalidStateError(TrackerError):
    """Raised when a transition is not allowed from the record's current state."""


class DuplicateError(TrackerError):
    """Raised by the record store when a roster name already exists in a workspace."""


class StoreUnavailable(TrackerError):
    """Raised by the record store when it cannot serve a request."""


def require_text(value: object, field: str) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def require_fields(values: dict[str, object]) -> dict[str, str]:
    """Return trimmed values, raising one error naming every blank field."""

    missing = [name for name, value in values.items() if value is None or not str(value).strip()]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")
    return {name: str(value).strip() for name, value in values.items()}
