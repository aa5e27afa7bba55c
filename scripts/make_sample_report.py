#!/usr/bin/env python
from __future__ import annotations

import argparse
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from kpi_backend.application import TrackerService
from kpi_backend.core.clock import FixedClock
from kpi_backend.exporters.xlsx_report import export_workbook
from kpi_backend.infrastructure import InMemoryRecordStore

SAMPLE_AGENTS = ["Alice", "Bruno", "Chen"]
SAMPLE_DOC_TYPES = ["Invoice", "Purchase Order", "Credit Note"]
SAMPLE_SHIFTS = [("09:00", "09:35", "Done"), ("09:40", "10:55", "Done"), ("11:00", "11:20", "No Doc"), ("13:05", None, "Pending")]


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample analytics workbook from seeded transactions")
    parser.add_argument("--workspace", default="team@example.com", help="workspace email")
    parser.add_argument("--days", type=int, default=5, help="number of days to seed")
    parser.add_argument("--output", required=True, help="output file path (.xlsx)")
    args = parser.parse_args()

    last_day = date.today()
    service = TrackerService(InMemoryRecordStore(), FixedClock(datetime.combine(last_day, datetime.min.time())))
    for name in SAMPLE_AGENTS:
        service.add_agent(args.workspace, name)
    for name in SAMPLE_DOC_TYPES:
        service.add_doc_type(args.workspace, name)

    first_day = last_day - timedelta(days=args.days - 1)
    for offset in range(args.days):
        day = (first_day + timedelta(days=offset)).isoformat()
        for index, agent in enumerate(SAMPLE_AGENTS):
            for shift, (start, end, status) in enumerate(SAMPLE_SHIFTS):
                record = service.start_transaction(
                    {
                        "agentName": agent,
                        "workspaceEmail": args.workspace,
                        "txId": f"TX-{offset:02d}{index}{shift}",
                        "typeOfDoc": SAMPLE_DOC_TYPES[(index + shift) % len(SAMPLE_DOC_TYPES)],
                        "startTime": start,
                        "date": day,
                    }
                )
                if end:
                    service.end_transaction(record.id, end, status=status)

    tables = service.analytics_report(args.workspace, first_day.isoformat(), last_day.isoformat())
    output = export_workbook(Path(args.output), tables)
    print(f"Sample report written: {output}")


if __name__ == "__main__":
    main()
