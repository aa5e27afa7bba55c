from __future__ import annotations

from fastapi import APIRouter, Cookie, HTTPException, Query

from kpi_backend.application import get_tracker_service
from kpi_backend.core.schema import AgentModel, DocTypeModel
from kpi_backend.core.validation import TrackerError
from kpi_backend.routes.common import http_error, resolve_workspace

router = APIRouter(tags=["roster"])


def _dump(model: AgentModel | DocTypeModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


@router.get("/agents")
async def list_agents(
    email: str | None = Query(default=None),
    kpi_email: str | None = Cookie(default=None),
) -> dict:
    service = get_tracker_service()
    try:
        agents = service.list_agents(resolve_workspace(email, kpi_email))
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"agents": [_dump(AgentModel.from_record(agent)) for agent in agents]}


@router.post("/agents", status_code=201)
async def create_agent(payload: dict, kpi_email: str | None = Cookie(default=None)) -> dict:
    if not str(payload.get("name") or "").strip():
        raise HTTPException(status_code=400, detail="Agent name is required")
    service = get_tracker_service()
    try:
        agent = service.add_agent(resolve_workspace(payload.get("workspaceEmail"), kpi_email), payload["name"])
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"agent": _dump(AgentModel.from_record(agent)), "message": f'Agent "{agent.name}" added'}


@router.delete("/agents")
async def delete_agent(payload: dict, kpi_email: str | None = Cookie(default=None)) -> dict:
    agent_id = payload.get("id")
    if not agent_id:
        raise HTTPException(status_code=400, detail="id required")
    workspace = resolve_workspace(payload.get("workspaceEmail"), kpi_email)
    service = get_tracker_service()
    try:
        service.remove_agent(str(agent_id), workspace=workspace)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"message": "Agent deleted"}


@router.get("/doctypes")
async def list_doc_types(
    email: str | None = Query(default=None),
    kpi_email: str | None = Cookie(default=None),
) -> dict:
    service = get_tracker_service()
    try:
        doc_types = service.list_doc_types(resolve_workspace(email, kpi_email))
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"docTypes": [_dump(DocTypeModel.from_record(item)) for item in doc_types]}


@router.post("/doctypes", status_code=201)
async def create_doc_type(payload: dict, kpi_email: str | None = Cookie(default=None)) -> dict:
    if not str(payload.get("name") or "").strip():
        raise HTTPException(status_code=400, detail="Doc type name is required")
    service = get_tracker_service()
    try:
        doc_type = service.add_doc_type(resolve_workspace(payload.get("workspaceEmail"), kpi_email), payload["name"])
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"docType": _dump(DocTypeModel.from_record(doc_type)), "message": f'"{doc_type.name}" added'}


@router.delete("/doctypes")
async def delete_doc_type(payload: dict, kpi_email: str | None = Cookie(default=None)) -> dict:
    doc_type_id = payload.get("id")
    if not doc_type_id:
        raise HTTPException(status_code=400, detail="id required")
    workspace = resolve_workspace(payload.get("workspaceEmail"), kpi_email)
    service = get_tracker_service()
    try:
        service.remove_doc_type(str(doc_type_id), workspace=workspace)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"message": "Deleted"}
