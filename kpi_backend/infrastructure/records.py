"""Infrastructure layer for workspace-scoped record persistence."""
from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from kpi_backend.core.validation import DuplicateError, NotFoundError
from kpi_backend.domain import Agent, DocType, TransactionRecord


@dataclass(frozen=True)
class TransactionFilters:
    """Optional narrowing applied on top of the mandatory workspace scope."""

    agent_name: str | None = None
    date: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    month: str | None = None

    def matches(self, record: TransactionRecord) -> bool:
        if self.agent_name and record.agent_name.lower() != self.agent_name.strip().lower():
            return False
        if self.month and record.month != self.month:
            return False
        if self.date_from or self.date_to:
            # a range replaces an exact date
            if self.date_from and record.date < self.date_from:
                return False
            if self.date_to and record.date > self.date_to:
                return False
        elif self.date and record.date != self.date:
            return False
        return True


class RecordStore(Protocol):
    """Persistence contract for agents, document types and transactions.

    Every query is scoped by a normalized workspace identifier. Implementations
    may raise ``NotFoundError``, ``DuplicateError`` or ``StoreUnavailable``.
    """

    def next_id(self) -> str: ...

    def find_agents(self, workspace: str) -> list[Agent]: ...

    def create_agent(self, workspace: str, name: str, *, created_at: datetime | None = None) -> Agent: ...

    def delete_agent(self, agent_id: str) -> Agent: ...

    def find_doc_types(self, workspace: str) -> list[DocType]: ...

    def create_doc_type(self, workspace: str, name: str, *, created_at: datetime | None = None) -> DocType: ...

    def delete_doc_type(self, doc_type_id: str) -> DocType: ...

    def find_transactions(
        self,
        workspace: str,
        filters: TransactionFilters | None = None,
        *,
        page: int = 1,
        limit: int = 200,
    ) -> tuple[list[TransactionRecord], int]: ...

    def create_transaction(self, record: TransactionRecord) -> TransactionRecord: ...

    def get_transaction(self, transaction_id: str) -> TransactionRecord: ...

    def save_transaction(self, record: TransactionRecord) -> TransactionRecord: ...

    def close_if_open(self, record: TransactionRecord) -> bool: ...

    def delete_transaction(self, transaction_id: str) -> None: ...

    def reset(self) -> None: ...


class InMemoryRecordStore:
    """Simple in-memory store for fast iteration and tests.

    Records are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._doc_types: dict[str, DocType] = {}
        self._transactions: dict[str, TransactionRecord] = {}
        self._counter = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # identifiers
    # ------------------------------------------------------------------
    def next_id(self) -> str:
        with self._lock:
            self._counter += 1
            return f"rec-{self._counter:06d}"

    # ------------------------------------------------------------------
    # agents
    # ------------------------------------------------------------------
    def find_agents(self, workspace: str) -> list[Agent]:
        with self._lock:
            return [replace(agent) for agent in self._agents.values() if agent.workspace_email == workspace]

    def create_agent(self, workspace: str, name: str, *, created_at: datetime | None = None) -> Agent:
        with self._lock:
            if any(a.name == name and a.workspace_email == workspace for a in self._agents.values()):
                raise DuplicateError(f'Agent "{name}" already exists in this workspace')
            agent = Agent(agent_id=self.next_id(), name=name, workspace_email=workspace, created_at=created_at)
            self._agents[agent.agent_id] = agent
            return replace(agent)

    def delete_agent(self, agent_id: str) -> Agent:
        with self._lock:
            agent = self._agents.pop(agent_id, None)
        if agent is None:
            raise NotFoundError("Agent not found")
        return agent

    # ------------------------------------------------------------------
    # document types
    # ------------------------------------------------------------------
    def find_doc_types(self, workspace: str) -> list[DocType]:
        with self._lock:
            return [replace(item) for item in self._doc_types.values() if item.workspace_email == workspace]

    def create_doc_type(self, workspace: str, name: str, *, created_at: datetime | None = None) -> DocType:
        with self._lock:
            if any(d.name == name and d.workspace_email == workspace for d in self._doc_types.values()):
                raise DuplicateError(f'"{name}" already exists')
            doc_type = DocType(doc_type_id=self.next_id(), name=name, workspace_email=workspace, created_at=created_at)
            self._doc_types[doc_type.doc_type_id] = doc_type
            return replace(doc_type)

    def delete_doc_type(self, doc_type_id: str) -> DocType:
        with self._lock:
            doc_type = self._doc_types.pop(doc_type_id, None)
        if doc_type is None:
            raise NotFoundError("Doc type not found")
        return doc_type

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------
    def find_transactions(
        self,
        workspace: str,
        filters: TransactionFilters | None = None,
        *,
        page: int = 1,
        limit: int = 200,
    ) -> tuple[list[TransactionRecord], int]:
        filters = filters or TransactionFilters()
        with self._lock:
            matched = [
                replace(record)
                for record in self._transactions.values()
                if record.workspace_email == workspace and filters.matches(record)
            ]
        matched.sort(key=lambda record: (record.date, record.start_time), reverse=True)
        page = max(page, 1)
        limit = max(limit, 1)
        offset = (page - 1) * limit
        return matched[offset : offset + limit], len(matched)

    def create_transaction(self, record: TransactionRecord) -> TransactionRecord:
        with self._lock:
            self._transactions[record.id] = replace(record)
        return record

    def get_transaction(self, transaction_id: str) -> TransactionRecord:
        with self._lock:
            record = self._transactions.get(transaction_id)
            if record is None:
                raise NotFoundError("Transaction not found")
            return replace(record)

    def save_transaction(self, record: TransactionRecord) -> TransactionRecord:
        with self._lock:
            if record.id not in self._transactions:
                raise NotFoundError("Transaction not found")
            self._transactions[record.id] = replace(record)
        return record

    def close_if_open(self, record: TransactionRecord) -> bool:
        """Persist a freshly closed record only if the stored copy is still open."""

        with self._lock:
            stored = self._transactions.get(record.id)
            if stored is None:
                raise NotFoundError("Transaction not found")
            if stored.end_time is not None:
                return False
            self._transactions[record.id] = replace(record)
            return True

    def delete_transaction(self, transaction_id: str) -> None:
        with self._lock:
            if self._transactions.pop(transaction_id, None) is None:
                raise NotFoundError("Transaction not found")

    def reset(self) -> None:
        with self._lock:
            self._agents.clear()
            self._doc_types.clear()
            self._transactions.clear()
            self._counter = 0
