import sys
from copy import deepcopy
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from kpi_backend.core.aggregation import aggregate, agent_daily_summaries
from kpi_backend.core.timemodel import to_decimal_hours, to_formatted_duration
from kpi_backend.domain import Agent, TransactionRecord

WORKSPACE = "ws1@example.com"


def _agent(name: str, index: int = 0) -> Agent:
    return Agent(agent_id=f"agent-{index}", name=name, workspace_email=WORKSPACE)


def _tx(agent: str, *, day: str = "2025-03-14", status: str = "Done", minutes: int = 0, doc: str = "Invoice") -> TransactionRecord:
    record = TransactionRecord(
        id=f"{agent}-{day}-{status}-{minutes}-{doc}",
        agent_name=agent,
        workspace_email=WORKSPACE,
        month="March",
        date=day,
        tx_id="T1",
        type_of_doc=doc,
        start_time="09:00",
        status=status,
    )
    if minutes:
        record.end_time = "later"
        record.tat_minutes = minutes
        record.tat_decimal = to_decimal_hours(minutes)
        record.tat_formatted = to_formatted_duration(minutes)
    return record


def test_average_handling_time_and_completion():
    result = aggregate([_agent("A")], [_tx("A", minutes=30), _tx("A", minutes=90)])

    row = result.per_agent[0]
    assert row.name == "A"
    assert row.total_tx == 2
    assert row.done == 2
    assert row.total_minutes == 120
    assert row.aht_minutes == 60
    assert row.completion_rate == 100


def test_empty_input_keeps_roster_rows():
    result = aggregate([_agent("A", 0), _agent("B", 1)], [])

    assert [row.name for row in result.per_agent] == ["A", "B"]
    for row in result.per_agent:
        assert row.total_tx == 0
        assert row.aht_minutes == 0
        assert row.completion_rate == 0
    assert result.daily == []
    assert result.per_doc_type == []
    assert result.totals.total_tx == 0
    assert result.totals.overall_aht == 0
    assert result.totals.completion_rate == 0


def test_open_transactions_count_but_do_not_affect_averages():
    result = aggregate(
        [_agent("A")],
        [_tx("A", status="Pending"), _tx("A", status="Done", minutes=40), _tx("A", status="No Doc", doc="Receipt")],
    )

    row = result.per_agent[0]
    assert (row.total_tx, row.done, row.pending, row.no_doc) == (3, 1, 1, 1)
    assert row.aht_minutes == 40
    assert round(row.completion_rate, 4) == round(100 / 3, 4)
    assert [(item.name, item.count) for item in result.per_doc_type] == [("Invoice", 1)]


def test_agents_sorted_by_volume_with_stable_ties():
    roster = [_agent("Quiet", 0), _agent("Busy", 1), _agent("Tie1", 2), _agent("Tie2", 3)]
    records = [_tx("Busy", minutes=10), _tx("Busy", minutes=20), _tx("Busy", minutes=30), _tx("Tie1"), _tx("Tie2")]

    result = aggregate(roster, records)

    assert [row.name for row in result.per_agent] == ["Busy", "Tie1", "Tie2", "Quiet"]


def test_name_match_is_exact():
    result = aggregate([_agent("Alice")], [_tx("alice", minutes=15), _tx("Alice ", minutes=15)])

    assert result.per_agent[0].total_tx == 0
    assert result.totals.total_tx == 2


def test_daily_trend_sorted_ascending():
    records = [
        _tx("A", day="2025-03-15", minutes=20),
        _tx("A", day="2025-03-13", minutes=10),
        _tx("A", day="2025-03-15", status="Pending"),
        _tx("A", day="2025-03-15", minutes=40, status="No Doc"),
    ]

    daily = aggregate([_agent("A")], records).daily

    assert [row.date for row in daily] == ["2025-03-13", "2025-03-15"]
    last = daily[1]
    assert (last.total, last.done, last.pending, last.no_doc) == (3, 1, 1, 1)
    assert last.avg_aht == 30


def test_doc_types_only_from_closed_and_sorted_by_count():
    records = [
        _tx("A", doc="Invoice", minutes=10),
        _tx("A", doc="Receipt", minutes=20),
        _tx("A", doc="Receipt", minutes=40),
        _tx("A", doc="Contract"),
    ]

    stats = aggregate([], records).per_doc_type

    assert [(row.name, row.count, row.avg_tat) for row in stats] == [("Receipt", 2, 30), ("Invoice", 1, 10)]


def test_workspace_totals():
    records = [_tx("A", minutes=30), _tx("B", status="Pending"), _tx("C", status="No Doc", minutes=60), _tx("A", minutes=90)]

    totals = aggregate([_agent("A")], records).totals

    assert (totals.total_tx, totals.done, totals.pending, totals.no_doc) == (4, 2, 1, 1)
    assert totals.total_minutes == 180
    assert totals.overall_aht == 60
    assert totals.completion_rate == 50


def test_completion_rate_grows_with_done():
    rates = []
    for done in range(4):
        records = [_tx("A", status="Done") for _ in range(done)] + [_tx("A", status="Pending") for _ in range(4 - done)]
        rates.append(aggregate([_agent("A")], records).per_agent[0].completion_rate)

    assert rates == sorted(rates)
    assert rates[0] == 0
    assert rates[-1] == 75


def test_inputs_are_not_mutated():
    roster = [_agent("B", 0), _agent("A", 1)]
    records = [_tx("A", minutes=5), _tx("B", day="2025-03-01")]
    snapshot = (deepcopy(roster), deepcopy(records))

    aggregate(roster, records)

    assert (roster, records) == snapshot


def test_agent_daily_summaries_follow_roster_order():
    roster = [_agent("B", 0), _agent("A", 1)]
    records = [_tx("A", minutes=30), _tx("A", status="Pending"), _tx("Ghost", minutes=10)]

    summaries = agent_daily_summaries(roster, records)

    assert [item.name for item in summaries] == ["B", "A"]
    assert summaries[0].total_transactions == 0
    assert summaries[0].transactions == []
    assert summaries[1].total_transactions == 2
    assert summaries[1].total_handling_minutes == 30
    assert summaries[1].aht_minutes == 30
    assert len(summaries[1].transactions) == 2
