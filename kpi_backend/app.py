import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kpi_backend.routes import analytics, roster, session, transactions


def configure_logging() -> None:
    level = os.getenv("KPI_LOG_LEVEL", "INFO").upper()
    logger = logging.getLogger("kpi_backend")
    logger.setLevel(level)
    if not logging.getLogger().handlers and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="KPI Tracker API", version="0.1.0")

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(session.router, prefix="/api")
    app.include_router(roster.router, prefix="/api")
    app.include_router(transactions.router, prefix="/api")
    app.include_router(analytics.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "KPI Tracker API",
                "docs": "/docs",
                "health": "/api/session",
            }
        )

    return app


app = create_app()
