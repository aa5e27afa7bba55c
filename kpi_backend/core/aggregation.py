"""Roll transactions up into per-agent, daily, per-document-type and workspace views.

Agents are matched to transactions by exact name. Renaming an agent after
transactions were logged detaches that history from the roster row.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from kpi_backend.core.schema import (
    AgentDailySummary,
    AgentStats,
    AggregateResult,
    DailyTrend,
    DocTypeStats,
    TransactionModel,
    WorkspaceTotals,
)
from kpi_backend.domain import STATUS_DONE, STATUS_NO_DOC, STATUS_PENDING, Agent, TransactionRecord

logger = logging.getLogger(__name__)


@dataclass
class _Tally:
    total: int = 0
    done: int = 0
    pending: int = 0
    no_doc: int = 0
    closed: int = 0
    minutes: int = 0

    def add(self, record: TransactionRecord) -> None:
        self.total += 1
        if record.status == STATUS_DONE:
            self.done += 1
        elif record.status == STATUS_PENDING:
            self.pending += 1
        elif record.status == STATUS_NO_DOC:
            self.no_doc += 1
        if record.tat_minutes > 0:
            self.closed += 1
            self.minutes += record.tat_minutes

    @property
    def average_minutes(self) -> float:
        return self.minutes / self.closed if self.closed else 0.0

    @property
    def completion_rate(self) -> float:
        return self.done / self.total * 100 if self.total else 0.0


def _tally(records: Iterable[TransactionRecord]) -> _Tally:
    tally = _Tally()
    for record in records:
        tally.add(record)
    return tally


def agent_statistics(agents: Sequence[Agent], transactions: Sequence[TransactionRecord]) -> list[AgentStats]:
    by_name: dict[str, _Tally] = {}
    for record in transactions:
        by_name.setdefault(record.agent_name, _Tally()).add(record)

    rows: list[AgentStats] = []
    for agent in agents:
        tally = by_name.get(agent.name, _Tally())
        rows.append(
            AgentStats(
                name=agent.name,
                total_tx=tally.total,
                done=tally.done,
                pending=tally.pending,
                no_doc=tally.no_doc,
                total_minutes=tally.minutes,
                aht_minutes=tally.average_minutes,
                completion_rate=tally.completion_rate,
            )
        )
    # sorted() is stable, so agents with equal counts keep roster order
    return sorted(rows, key=lambda row: row.total_tx, reverse=True)


def daily_trend(transactions: Sequence[TransactionRecord]) -> list[DailyTrend]:
    by_date: dict[str, _Tally] = {}
    for record in transactions:
        by_date.setdefault(record.date, _Tally()).add(record)

    return [
        DailyTrend(
            date=day,
            total=tally.total,
            done=tally.done,
            pending=tally.pending,
            no_doc=tally.no_doc,
            avg_aht=tally.average_minutes,
        )
        for day, tally in sorted(by_date.items())
    ]


def doc_type_statistics(transactions: Sequence[TransactionRecord]) -> list[DocTypeStats]:
    by_type: dict[str, _Tally] = {}
    for record in transactions:
        if record.tat_minutes > 0:
            by_type.setdefault(record.type_of_doc, _Tally()).add(record)

    rows = [DocTypeStats(name=name, count=tally.closed, avg_tat=tally.average_minutes) for name, tally in by_type.items()]
    return sorted(rows, key=lambda row: row.count, reverse=True)


def workspace_totals(transactions: Sequence[TransactionRecord]) -> WorkspaceTotals:
    tally = _tally(transactions)
    return WorkspaceTotals(
        total_tx=tally.total,
        done=tally.done,
        pending=tally.pending,
        no_doc=tally.no_doc,
        total_minutes=tally.minutes,
        overall_aht=tally.average_minutes,
        completion_rate=tally.completion_rate,
    )


def aggregate(agents: Iterable[Agent], transactions: Iterable[TransactionRecord]) -> AggregateResult:
    """Compute all four views. Inputs are only read; empty input yields zeros."""

    roster = list(agents)
    records = list(transactions)
    result = AggregateResult(
        per_agent=agent_statistics(roster, records),
        daily=daily_trend(records),
        per_doc_type=doc_type_statistics(records),
        totals=workspace_totals(records),
    )
    logger.debug(
        "aggregated %d transactions across %d agents, %d days, %d doc types",
        len(records),
        len(roster),
        len(result.daily),
        len(result.per_doc_type),
    )
    return result


def agent_daily_summaries(agents: Iterable[Agent], transactions: Iterable[TransactionRecord]) -> list[AgentDailySummary]:
    """End-of-day rows in roster order, each carrying the agent's own transactions."""

    records = list(transactions)
    summaries: list[AgentDailySummary] = []
    for agent in agents:
        own = [
            record
            for record in records
            if record.agent_name == agent.name and record.workspace_email == agent.workspace_email
        ]
        tally = _tally(own)
        summaries.append(
            AgentDailySummary(
                name=agent.name,
                total_handling_minutes=tally.minutes,
                done=tally.done,
                pending=tally.pending,
                no_doc=tally.no_doc,
                total_transactions=tally.total,
                aht_minutes=tally.average_minutes,
                transactions=[TransactionModel.from_record(record) for record in own],
            )
        )
    return summaries
