from __future__ import annotations

from fastapi import HTTPException

from kpi_backend.core.validation import (
    DuplicateError,
    InvalidStateError,
    NotFoundError,
    StoreUnavailable,
    TrackerError,
    ValidationError,
)

STATUS_CODES: dict[type[TrackerError], int] = {
    ValidationError: 400,
    InvalidStateError: 400,
    NotFoundError: 404,
    DuplicateError: 409,
    StoreUnavailable: 503,
}


def http_error(exc: TrackerError) -> HTTPException:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail="Server error")


def resolve_workspace(explicit: str | None, session: str | None) -> str:
    """Prefer an explicit workspace parameter, falling back to the session cookie."""

    workspace = (explicit or session or "").strip()
    if not workspace:
        raise HTTPException(status_code=400, detail="workspaceEmail required")
    return workspace
