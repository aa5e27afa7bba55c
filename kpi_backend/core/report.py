"""Shape aggregation views into named tables for spreadsheet-style exporters."""
from __future__ import annotations

from datetime import datetime
from typing import Sequence

from kpi_backend.core.schema import AggregateResult, AgentDailySummary, ReportTable
from kpi_backend.core.timemodel import format_hours_minutes, format_report_duration, parse_iso_date


def _percent(value: float) -> str:
    return f"{value:.1f}%"


def _long_date(value: str) -> str:
    day = parse_iso_date(value)
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def date_range_label(date_from: str, date_to: str) -> str:
    return f"{_long_date(date_from)} - {_long_date(date_to)}"


def report_slug(prefix: str, workspace: str, *parts: str) -> str:
    """File stem such as ``Analytics_team_2025-03-01_to_2025-03-07``."""

    local = workspace.split("@", 1)[0]
    return "_".join([prefix, local, *parts])


def assemble_analytics_report(
    result: AggregateResult,
    *,
    date_label: str,
    workspace_label: str,
    generated_at: datetime,
) -> list[ReportTable]:
    totals = result.totals
    summary = ReportTable(
        name="Summary",
        column_widths=[24, 16],
        rows=[
            ["Performance Analytics Report"],
            [f"Period: {date_label}"],
            [f"Workspace: {workspace_label}"],
            [f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}"],
            [],
            ["Metric", "Value"],
            ["Total Transactions", totals.total_tx],
            ["Done", totals.done],
            ["Pending", totals.pending],
            ["No Doc", totals.no_doc],
            ["Average AHT", format_hours_minutes(totals.overall_aht)],
            ["Completion Rate", _percent(totals.completion_rate)],
        ],
    )

    agents = ReportTable(
        name="Agent Stats",
        column_widths=[24, 10, 10, 10, 10, 12, 16],
        rows=[
            ["Agent Statistics"],
            [f"Period: {date_label}"],
            [],
            ["Agent Name", "Total TX", "Done", "Pending", "No Doc", "AHT", "Completion Rate"],
            *[
                [
                    row.name,
                    row.total_tx,
                    row.done,
                    row.pending,
                    row.no_doc,
                    format_hours_minutes(row.aht_minutes),
                    _percent(row.completion_rate),
                ]
                for row in sorted(result.per_agent, key=lambda item: item.total_tx, reverse=True)
            ],
        ],
    )

    doc_types = ReportTable(
        name="Doc Types",
        column_widths=[32, 10, 12],
        rows=[
            ["Doc Type Statistics"],
            [f"Period: {date_label}"],
            [],
            ["Type", "Count", "Avg TAT"],
            *[[row.name, row.count, format_hours_minutes(row.avg_tat)] for row in result.per_doc_type],
        ],
    )

    daily = ReportTable(
        name="Daily Trends",
        column_widths=[12, 10, 10, 10, 10, 12],
        rows=[
            ["Daily Transaction Trends"],
            [f"Period: {date_label}"],
            [],
            ["Date", "Total", "Done", "Pending", "No Doc", "Avg AHT"],
            *[
                [row.date, row.total, row.done, row.pending, row.no_doc, format_hours_minutes(row.avg_aht)]
                for row in result.daily
            ],
        ],
    )
    return [summary, agents, doc_types, daily]


def assemble_eod_report(
    summaries: Sequence[AgentDailySummary],
    *,
    date_label: str,
    workspace_label: str,
    generated_at: datetime,
) -> list[ReportTable]:
    """Daily production report: one summary table, then one table per active agent."""

    total_tx = sum(item.total_transactions for item in summaries)
    total_minutes = sum(item.total_handling_minutes for item in summaries)
    closed = sum(1 for item in summaries for tx in item.transactions if tx.tat_minutes > 0)
    overall_aht = total_minutes / closed if closed else 0.0

    rows: list[list[str | int | float | None]] = [
        ["Agent Daily Production Report"],
        [f"Date: {date_label}"],
        [f"Workspace: {workspace_label}"],
        [f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}"],
        [],
        ["Agent Name", "Total Handling Time", "# Done", "# Pending", "# No Doc", "Total TX", "AHT per TX"],
    ]
    for item in summaries:
        rows.append(
            [
                item.name,
                format_report_duration(item.total_handling_minutes),
                item.done,
                item.pending,
                item.no_doc,
                item.total_transactions,
                format_report_duration(item.aht_minutes),
            ]
        )
    rows.append([])
    rows.append(
        [
            "TOTAL",
            format_report_duration(total_minutes),
            sum(item.done for item in summaries),
            sum(item.pending for item in summaries),
            sum(item.no_doc for item in summaries),
            total_tx,
            format_report_duration(overall_aht),
        ]
    )
    tables = [ReportTable(name="Summary", rows=rows, column_widths=[28, 20, 10, 10, 10, 12, 16])]

    for item in summaries:
        if not item.transactions:
            continue
        count = len(item.transactions)
        tables.append(
            ReportTable(
                # sheet names are capped at 31 characters
                name=item.name[:31],
                column_widths=[5, 16, 24, 10, 10, 10, 10, 12, 30],
                rows=[
                    [item.name],
                    [f"Date: {date_label}"],
                    [],
                    ["#", "TX ID", "Type of Doc", "Start Time", "End Time", "TAT", "Status", "TAT Decimal", "Notes"],
                    *[
                        [
                            count - index,
                            tx.tx_id,
                            tx.type_of_doc,
                            tx.start_time,
                            tx.end_time or "-",
                            tx.tat_formatted or "-",
                            tx.status,
                            tx.tat_decimal,
                            tx.notes,
                        ]
                        for index, tx in enumerate(item.transactions)
                    ],
                ],
            )
        )
    return tables
