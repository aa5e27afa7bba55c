"""Application service layer for transaction tracking and reporting."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Mapping

from kpi_backend.core import aggregation, transactions
from kpi_backend.core.clock import Clock, SystemClock
from kpi_backend.core.name_normalize import normalize_workspace
from kpi_backend.core.report import (
    assemble_analytics_report,
    assemble_eod_report,
    date_range_label,
    report_slug,
)
from kpi_backend.core.schema import (
    AgentDailySummary,
    AggregateResult,
    EndTransactionRequest,
    ReportTable,
    StartTransactionRequest,
    UpdateTransactionRequest,
)
from kpi_backend.core.timemodel import parse_iso_date
from kpi_backend.core.validation import InvalidStateError, NotFoundError, ValidationError, require_text
from kpi_backend.core.workspaces import ensure_export_root
from kpi_backend.domain import Agent, DocType, TransactionRecord
from kpi_backend.exporters.csv_report import export_tables
from kpi_backend.exporters.xlsx_report import export_workbook
from kpi_backend.infrastructure import InMemoryRecordStore, RecordStore, TransactionFilters

logger = logging.getLogger(__name__)

DEFAULT_ANALYTICS_DAYS = 30
_FETCH_PAGE_SIZE = 1000


class TrackerService:
    """Coordinates transaction, roster and reporting use cases."""

    def __init__(self, store: RecordStore, clock: Clock | None = None) -> None:
        self._store = store
        self.clock: Clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # roster
    # ------------------------------------------------------------------
    def list_agents(self, workspace: str) -> list[Agent]:
        return self._store.find_agents(self._scope(workspace))

    def add_agent(self, workspace: str, name: str) -> Agent:
        name = require_text(name, "Agent name")
        agent = self._store.create_agent(self._scope(workspace), name, created_at=self.clock.now())
        logger.info("agent %r added to workspace %s", agent.name, agent.workspace_email)
        return agent

    def remove_agent(self, agent_id: str, *, workspace: str | None = None) -> Agent:
        agent_id = require_text(agent_id, "id")
        if workspace is not None and agent_id not in {item.agent_id for item in self.list_agents(workspace)}:
            raise NotFoundError("Agent not found")
        agent = self._store.delete_agent(agent_id)
        logger.info("agent %r removed from workspace %s", agent.name, agent.workspace_email)
        return agent

    def list_doc_types(self, workspace: str) -> list[DocType]:
        return self._store.find_doc_types(self._scope(workspace))

    def add_doc_type(self, workspace: str, name: str) -> DocType:
        name = require_text(name, "Doc type name")
        doc_type = self._store.create_doc_type(self._scope(workspace), name, created_at=self.clock.now())
        logger.info("doc type %r added to workspace %s", doc_type.name, doc_type.workspace_email)
        return doc_type

    def remove_doc_type(self, doc_type_id: str, *, workspace: str | None = None) -> DocType:
        doc_type_id = require_text(doc_type_id, "id")
        if workspace is not None and doc_type_id not in {item.doc_type_id for item in self.list_doc_types(workspace)}:
            raise NotFoundError("Doc type not found")
        doc_type = self._store.delete_doc_type(doc_type_id)
        logger.info("doc type %r removed from workspace %s", doc_type.name, doc_type.workspace_email)
        return doc_type

    # ------------------------------------------------------------------
    # transaction lifecycle
    # ------------------------------------------------------------------
    def start_transaction(self, request: StartTransactionRequest | Mapping[str, Any]) -> TransactionRecord:
        if not isinstance(request, StartTransactionRequest):
            request = StartTransactionRequest.model_validate(dict(request))
        record = transactions.open_transaction(request, clock=self.clock, record_id=self._store.next_id())
        return self._store.create_transaction(record)

    def end_transaction(
        self,
        transaction_id: str,
        end_time: str,
        *,
        status: str | None = None,
        notes: str | None = None,
        workspace: str | None = None,
    ) -> TransactionRecord:
        request = EndTransactionRequest(transaction_id=transaction_id, end_time=end_time, status=status, notes=notes)
        record = self._load(request.transaction_id, workspace)
        transactions.close_transaction(
            record,
            request.end_time or "",
            clock=self.clock,
            status=request.status,
            notes=request.notes,
        )
        if not self._store.close_if_open(record):
            logger.warning("transaction %s was ended concurrently", record.id)
            raise InvalidStateError("Already ended")
        return record

    def update_transaction(
        self,
        transaction_id: str,
        changes: UpdateTransactionRequest | Mapping[str, Any],
        *,
        workspace: str | None = None,
    ) -> TransactionRecord:
        if not isinstance(changes, UpdateTransactionRequest):
            changes = UpdateTransactionRequest.model_validate(dict(changes))
        record = self._load(transaction_id, workspace)
        transactions.apply_correction(record, changes.changes(), clock=self.clock)
        return self._store.save_transaction(record)

    def delete_transaction(self, transaction_id: str, *, workspace: str | None = None) -> None:
        record = self._load(transaction_id, workspace)
        self._store.delete_transaction(record.id)
        logger.info("transaction %s deleted", record.id)

    def get_transaction(self, transaction_id: str, *, workspace: str | None = None) -> TransactionRecord:
        return self._load(transaction_id, workspace)

    def _load(self, transaction_id: str | None, workspace: str | None) -> TransactionRecord:
        """Fetch by id; with a workspace, records of other workspaces read as missing."""

        record = self._store.get_transaction(require_text(transaction_id, "transactionId"))
        if workspace is not None and record.workspace_email != self._scope(workspace):
            logger.warning("transaction %s requested from another workspace", record.id)
            raise NotFoundError("Transaction not found")
        return record

    def active_transaction(self, workspace: str, agent_name: str, *, on_date: str | None = None) -> TransactionRecord | None:
        """The agent's most recent open transaction on a day (today by default)."""

        day = on_date or self.clock.today().isoformat()
        filters = TransactionFilters(agent_name=require_text(agent_name, "name"), date=day)
        for record in self._fetch_all(self._scope(workspace), filters):
            if record.is_open:
                return record
        return None

    def elapsed_minutes(self, record: TransactionRecord) -> int:
        return transactions.elapsed_minutes(record, clock=self.clock)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def list_transactions(
        self,
        workspace: str,
        filters: TransactionFilters | None = None,
        *,
        page: int = 1,
        limit: int = 200,
    ) -> tuple[list[TransactionRecord], int]:
        return self._store.find_transactions(self._scope(workspace), filters, page=page, limit=limit)

    def _fetch_all(self, workspace: str, filters: TransactionFilters) -> list[TransactionRecord]:
        collected: list[TransactionRecord] = []
        page = 1
        while True:
            records, total = self._store.find_transactions(workspace, filters, page=page, limit=_FETCH_PAGE_SIZE)
            collected.extend(records)
            if not records or len(collected) >= total:
                return collected
            page += 1

    def resolve_range(self, date_from: str | None, date_to: str | None) -> tuple[str, str]:
        end = parse_iso_date(date_to) if date_to else self.clock.today()
        start = parse_iso_date(date_from) if date_from else end - timedelta(days=DEFAULT_ANALYTICS_DAYS)
        if start > end:
            raise ValidationError("from must not be after to")
        return start.isoformat(), end.isoformat()

    # ------------------------------------------------------------------
    # analytics
    # ------------------------------------------------------------------
    def aggregate(self, workspace: str, date_from: str | None = None, date_to: str | None = None) -> AggregateResult:
        scope = self._scope(workspace)
        start, end = self.resolve_range(date_from, date_to)
        records = self._fetch_all(scope, TransactionFilters(date_from=start, date_to=end))
        return aggregation.aggregate(self._store.find_agents(scope), records)

    def analytics_report(self, workspace: str, date_from: str | None = None, date_to: str | None = None) -> list[ReportTable]:
        scope = self._scope(workspace)
        start, end = self.resolve_range(date_from, date_to)
        return assemble_analytics_report(
            self.aggregate(scope, start, end),
            date_label=date_range_label(start, end),
            workspace_label=scope,
            generated_at=self.clock.now(),
        )

    def eod_summaries(self, workspace: str, on_date: str | None = None) -> list[AgentDailySummary]:
        scope = self._scope(workspace)
        day = parse_iso_date(on_date).isoformat() if on_date else self.clock.today().isoformat()
        records = self._fetch_all(scope, TransactionFilters(date=day))
        return aggregation.agent_daily_summaries(self._store.find_agents(scope), records)

    def eod_report(self, workspace: str, on_date: str | None = None) -> list[ReportTable]:
        scope = self._scope(workspace)
        day = parse_iso_date(on_date) if on_date else self.clock.today()
        return assemble_eod_report(
            self.eod_summaries(scope, day.isoformat()),
            date_label=_weekday_label(day),
            workspace_label=scope,
            generated_at=self.clock.now(),
        )

    def export_analytics(
        self,
        workspace: str,
        date_from: str | None = None,
        date_to: str | None = None,
        *,
        fmt: str = "xlsx",
    ) -> Path:
        scope = self._scope(workspace)
        start, end = self.resolve_range(date_from, date_to)
        tables = self.analytics_report(scope, start, end)
        return self._export(scope, tables, report_slug("Analytics", scope, start, "to", end), fmt)

    def export_eod(self, workspace: str, on_date: str | None = None, *, fmt: str = "xlsx") -> Path:
        scope = self._scope(workspace)
        day = (parse_iso_date(on_date) if on_date else self.clock.today()).isoformat()
        return self._export(scope, self.eod_report(scope, day), report_slug("EOD", scope, day), fmt)

    def _export(self, workspace: str, tables: list[ReportTable], slug: str, fmt: str) -> Path:
        root = ensure_export_root(workspace)
        if fmt == "xlsx":
            path = export_workbook(root / f"{slug}.xlsx", tables)
        elif fmt == "csv":
            export_tables(root / slug, tables)
            path = root / slug
        else:
            raise ValidationError("format must be xlsx or csv")
        logger.info("exported %s report for %s to %s", fmt, workspace, path)
        return path

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _scope(workspace: str) -> str:
        return normalize_workspace(require_text(workspace, "workspaceEmail"))

    def reset(self) -> None:
        self._store.reset()


def _weekday_label(day: date) -> str:
    return f"{day.strftime('%A, %B')} {day.day}, {day.year}"


_store = InMemoryRecordStore()
_service = TrackerService(_store)


def get_tracker_service() -> TrackerService:
    """Return the singleton tracker service for the process."""

    return _service


def reset_tracker_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _service.reset()
