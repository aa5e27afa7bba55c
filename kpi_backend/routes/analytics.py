from __future__ import annotations

from fastapi import APIRouter, Cookie, Query
from fastapi.responses import FileResponse

from kpi_backend.application import get_tracker_service
from kpi_backend.core.validation import TrackerError
from kpi_backend.routes.common import http_error, resolve_workspace

router = APIRouter(tags=["analytics"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/analytics")
async def get_analytics(
    workspace_email: str | None = Query(default=None, alias="workspaceEmail"),
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    kpi_email: str | None = Cookie(default=None),
) -> dict:
    service = get_tracker_service()
    try:
        workspace = resolve_workspace(workspace_email, kpi_email)
        start, end = service.resolve_range(date_from, date_to)
        result = service.aggregate(workspace, start, end)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"from": start, "to": end, **result.model_dump(mode="json", by_alias=True)}


@router.get("/analytics/export")
async def export_analytics(
    workspace_email: str | None = Query(default=None, alias="workspaceEmail"),
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    kpi_email: str | None = Cookie(default=None),
) -> FileResponse:
    service = get_tracker_service()
    try:
        path = service.export_analytics(resolve_workspace(workspace_email, kpi_email), date_from, date_to)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return FileResponse(path, media_type=XLSX_MEDIA_TYPE, filename=path.name)


@router.get("/eod")
async def get_eod(
    workspace_email: str | None = Query(default=None, alias="workspaceEmail"),
    date: str | None = Query(default=None),
    kpi_email: str | None = Cookie(default=None),
) -> dict:
    service = get_tracker_service()
    try:
        summaries = service.eod_summaries(resolve_workspace(workspace_email, kpi_email), date)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"items": [item.model_dump(mode="json", by_alias=True) for item in summaries]}


@router.get("/eod/export")
async def export_eod(
    workspace_email: str | None = Query(default=None, alias="workspaceEmail"),
    date: str | None = Query(default=None),
    kpi_email: str | None = Cookie(default=None),
) -> FileResponse:
    service = get_tracker_service()
    try:
        path = service.export_eod(resolve_workspace(workspace_email, kpi_email), date)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return FileResponse(path, media_type=XLSX_MEDIA_TYPE, filename=path.name)
