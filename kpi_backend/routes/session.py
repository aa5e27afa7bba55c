from __future__ import annotations

import os

from fastapi import APIRouter, Cookie, HTTPException
from fastapi.responses import JSONResponse

from kpi_backend.core.name_normalize import normalize_workspace

router = APIRouter(tags=["session"])

SESSION_COOKIE = "kpi_email"
SESSION_MAX_AGE = 60 * 60 * 24


@router.post("/login")
async def login(payload: dict) -> JSONResponse:
    """Bind the caller to a workspace. This scopes data; it does not authenticate."""
    email = str(payload.get("email") or "").strip()
    if not email:
        raise HTTPException(status_code=400, detail="Email required")

    workspace = normalize_workspace(email)
    response = JSONResponse({"success": True, "workspaceEmail": workspace})
    response.set_cookie(
        SESSION_COOKIE,
        workspace,
        httponly=True,
        secure=os.getenv("KPI_COOKIE_SECURE") == "1",
        samesite="lax",
        path="/",
        max_age=SESSION_MAX_AGE,
    )
    return response


@router.get("/session")
async def current_session(kpi_email: str | None = Cookie(default=None)) -> dict:
    return {"workspaceEmail": kpi_email}


@router.post("/logout")
async def logout() -> JSONResponse:
    response = JSONResponse({"success": True})
    response.delete_cookie(SESSION_COOKIE, path="/")
    return response
