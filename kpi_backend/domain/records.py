"""Domain records persisted by the record store."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

STATUS_NO_DOC = "No Doc"
STATUS_PENDING = "Pending"
STATUS_DONE = "Done"
STATUSES = (STATUS_NO_DOC, STATUS_PENDING, STATUS_DONE)


@dataclass(slots=True)
class Agent:
    """An agent on a workspace roster. Transactions reference it by name only."""

    agent_id: str
    name: str
    workspace_email: str
    created_at: datetime | None = None


@dataclass(slots=True)
class DocType:
    """A document type on a workspace catalog."""

    doc_type_id: str
    name: str
    workspace_email: str
    created_at: datetime | None = None


@dataclass(slots=True)
class TransactionRecord:
    """A single timed work item handled by an agent."""

    id: str
    agent_name: str
    workspace_email: str
    month: str
    date: str
    tx_id: str
    type_of_doc: str
    start_time: str
    end_time: str | None = None
    tat_minutes: int = 0
    tat_decimal: float = 0.0
    tat_formatted: str = ""
    status: str = STATUS_PENDING
    notes: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None
