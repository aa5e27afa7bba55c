from __future__ import annotations

import math

from fastapi import APIRouter, Cookie, HTTPException, Query
from pydantic import ValidationError as PayloadError

from kpi_backend.application import get_tracker_service
from kpi_backend.core.schema import StartTransactionRequest, TransactionModel, UpdateTransactionRequest
from kpi_backend.core.timemodel import to_formatted_duration, to_short_duration
from kpi_backend.core.validation import TrackerError
from kpi_backend.domain import TransactionRecord
from kpi_backend.infrastructure import TransactionFilters
from kpi_backend.routes.common import http_error, resolve_workspace

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _dump(record: TransactionRecord) -> dict:
    return TransactionModel.from_record(record).model_dump(mode="json", by_alias=True)


@router.get("")
async def list_transactions(
    workspace_email: str | None = Query(default=None, alias="workspaceEmail"),
    name: str | None = Query(default=None),
    date: str | None = Query(default=None),
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    month: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=200, ge=1),
    kpi_email: str | None = Cookie(default=None),
) -> dict:
    service = get_tracker_service()
    filters = TransactionFilters(
        agent_name=name.strip() if name else None,
        date=date,
        date_from=date_from,
        date_to=date_to,
        month=month,
    )
    try:
        records, total = service.list_transactions(
            resolve_workspace(workspace_email, kpi_email), filters, page=page, limit=limit
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {
        "records": [_dump(record) for record in records],
        "total": total,
        "page": page,
        "totalPages": math.ceil(total / limit),
    }


@router.get("/active")
async def get_active_transaction(
    name: str,
    workspace_email: str | None = Query(default=None, alias="workspaceEmail"),
    date: str | None = Query(default=None),
    kpi_email: str | None = Cookie(default=None),
) -> dict:
    """The agent's open transaction with its running timer, if any."""
    service = get_tracker_service()
    try:
        record = service.active_transaction(resolve_workspace(workspace_email, kpi_email), name, on_date=date)
    except TrackerError as exc:
        raise http_error(exc) from exc
    if record is None:
        return {"transaction": None, "elapsedMinutes": 0, "elapsed": to_short_duration(None)}
    elapsed = service.elapsed_minutes(record)
    return {"transaction": _dump(record), "elapsedMinutes": elapsed, "elapsed": to_short_duration(elapsed)}


@router.post("")
async def post_transaction(payload: dict, kpi_email: str | None = Cookie(default=None)) -> dict:
    action = payload.get("action")
    agent_name = str(payload.get("agentName") or "").strip()
    workspace = str(payload.get("workspaceEmail") or kpi_email or "").strip()
    if not agent_name or not workspace:
        raise HTTPException(status_code=400, detail="agentName and workspaceEmail required")

    service = get_tracker_service()
    try:
        if action == "start":
            request = StartTransactionRequest.model_validate({**payload, "workspaceEmail": workspace})
            record = service.start_transaction(request)
            return {"message": f"Transaction #{record.tx_id} started", "transaction": _dump(record), "action": "start"}

        if action == "end":
            transaction_id = payload.get("transactionId")
            end_time = payload.get("endTime")
            if not transaction_id or not end_time:
                raise HTTPException(status_code=400, detail="transactionId and endTime required")
            record = service.end_transaction(
                str(transaction_id),
                str(end_time),
                status=payload.get("status"),
                notes=payload.get("notes"),
                workspace=workspace,
            )
            return {
                "message": f"Done - TAT: {to_formatted_duration(record.tat_minutes)}",
                "transaction": _dump(record),
                "action": "end",
            }

        if action == "update":
            transaction_id = payload.get("transactionId")
            if not transaction_id:
                raise HTTPException(status_code=400, detail="transactionId required")
            changes = UpdateTransactionRequest.model_validate(
                {key: value for key, value in payload.items() if key not in {"action", "agentName", "workspaceEmail"}}
            )
            record = service.update_transaction(str(transaction_id), changes, workspace=workspace)
            return {"message": "Updated", "transaction": _dump(record), "action": "update"}
    except PayloadError as exc:
        raise HTTPException(status_code=400, detail="invalid transaction payload") from exc
    except TrackerError as exc:
        raise http_error(exc) from exc

    raise HTTPException(status_code=400, detail="Invalid action")


@router.delete("")
async def delete_transaction(payload: dict, kpi_email: str | None = Cookie(default=None)) -> dict:
    transaction_id = payload.get("id")
    if not transaction_id:
        raise HTTPException(status_code=400, detail="ID required")
    workspace = resolve_workspace(payload.get("workspaceEmail"), kpi_email)
    service = get_tracker_service()
    try:
        service.delete_transaction(str(transaction_id), workspace=workspace)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"message": "Deleted"}
