"""Lifecycle of a single transaction: Open -> Closed, plus in-place correction.

These functions only transform records; loading and saving belongs to the
application service and the record store behind it.
"""
from __future__ import annotations

import logging
from typing import Mapping

from kpi_backend.core.clock import Clock, now_hhmm
from kpi_backend.core.name_normalize import normalize_workspace
from kpi_backend.core.schema import StartTransactionRequest
from kpi_backend.core.timemodel import (
    compute_duration_minutes,
    duration_fields,
    month_name,
    normalize_clock,
    parse_iso_date,
)
from kpi_backend.core.validation import InvalidStateError, ValidationError, require_fields, require_text
from kpi_backend.domain import STATUSES, STATUS_PENDING, TransactionRecord

logger = logging.getLogger(__name__)

CORRECTABLE_FIELDS = ("status", "notes", "type_of_doc", "tx_id")


def _check_status(status: str) -> str:
    if status not in STATUSES:
        raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
    return status


def _apply_durations(record: TransactionRecord, start_time: str, end_time: str) -> None:
    fields = duration_fields(start_time, end_time)
    record.start_time = start_time
    record.end_time = end_time
    record.tat_minutes = fields.minutes
    record.tat_decimal = fields.decimal_hours
    record.tat_formatted = fields.formatted


def open_transaction(request: StartTransactionRequest, *, clock: Clock, record_id: str) -> TransactionRecord:
    """Build a new Open transaction from a start request.

    ``tx_id`` is not checked for uniqueness; the same external id may be
    logged more than once.
    """

    values = require_fields(
        {
            "agentName": request.agent_name,
            "workspaceEmail": request.workspace_email,
            "txId": request.tx_id,
            "typeOfDoc": request.type_of_doc,
            "startTime": request.start_time,
        }
    )
    start_time = normalize_clock(values["startTime"])

    if request.date and request.date.strip():
        use_date = parse_iso_date(request.date).isoformat()
    else:
        use_date = clock.today().isoformat()

    moment = clock.now()
    record = TransactionRecord(
        id=record_id,
        agent_name=values["agentName"],
        workspace_email=normalize_workspace(values["workspaceEmail"]),
        month=month_name(use_date),
        date=use_date,
        tx_id=values["txId"],
        type_of_doc=values["typeOfDoc"],
        start_time=start_time,
        status=_check_status(request.status or STATUS_PENDING),
        notes=request.notes or "",
        created_at=moment,
        updated_at=moment,
    )
    logger.info(
        "transaction %s opened for agent=%s workspace=%s txId=%s",
        record.id,
        record.agent_name,
        record.workspace_email,
        record.tx_id,
    )
    return record


def close_transaction(
    record: TransactionRecord,
    end_time: str,
    *,
    clock: Clock,
    status: str | None = None,
    notes: str | None = None,
) -> TransactionRecord:
    """Close an Open transaction, computing its TAT fields."""

    if not record.is_open:
        logger.warning("transaction %s already ended at %s", record.id, record.end_time)
        raise InvalidStateError("Already ended")
    end_time = normalize_clock(require_text(end_time, "endTime"))

    if status:
        _check_status(status)

    _apply_durations(record, record.start_time, end_time)
    if status:
        record.status = status
    if notes is not None:
        record.notes = notes
    record.updated_at = clock.now()
    logger.info("transaction %s closed, TAT %s", record.id, record.tat_formatted)
    return record


def apply_correction(record: TransactionRecord, changes: Mapping[str, object], *, clock: Clock) -> TransactionRecord:
    """Apply a partial correction to a transaction in either state.

    Durations are recomputed only when both a start and an end time are known
    after the change; a correction without times leaves them untouched.
    """

    updates = {
        key: str(changes[key])
        for key in CORRECTABLE_FIELDS
        if changes.get(key) is not None
    }
    if "status" in updates:
        _check_status(updates["status"])

    new_start = str(changes.get("start_time") or record.start_time).strip()
    new_end = str(changes.get("end_time") or record.end_time or "").strip()
    # both times are validated before anything is written
    if new_start:
        new_start = normalize_clock(new_start)
    if new_end:
        new_end = normalize_clock(new_end)

    for attribute, value in updates.items():
        setattr(record, attribute, value)

    if new_start and new_end:
        was_open = record.is_open
        _apply_durations(record, new_start, new_end)
        if was_open:
            logger.info("transaction %s closed through correction, TAT %s", record.id, record.tat_formatted)
        else:
            logger.info("transaction %s durations recomputed, TAT %s", record.id, record.tat_formatted)
    elif changes.get("start_time"):
        record.start_time = new_start

    record.updated_at = clock.now()
    return record


def elapsed_minutes(record: TransactionRecord, *, clock: Clock) -> int:
    """Minutes on the clock so far for an open record, or its TAT once closed."""

    if not record.is_open:
        return record.tat_minutes
    return compute_duration_minutes(record.start_time, now_hhmm(clock))
