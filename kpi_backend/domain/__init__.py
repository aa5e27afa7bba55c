"""Domain layer definitions."""

from .records import (
    STATUSES,
    STATUS_DONE,
    STATUS_NO_DOC,
    STATUS_PENDING,
    Agent,
    DocType,
    TransactionRecord,
)

__all__ = [
    "Agent",
    "DocType",
    "TransactionRecord",
    "STATUSES",
    "STATUS_DONE",
    "STATUS_NO_DOC",
    "STATUS_PENDING",
]
