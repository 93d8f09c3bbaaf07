import logging
import os
import sqlite3
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from single_invites.api.deps import get_context, get_rules, get_settings
from single_invites.api.routes import admin_invites, invites, onboarding

logger = logging.getLogger("single_invites.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and ensure the schema on startup (fail-fast)
    try:
        get_rules()
        get_context()
        logger.info("Rules loaded from %s; database at %s", settings.rules_path, settings.db_path)
    except Exception:
        logger.critical("Startup failed", exc_info=True)
        sys.exit(1)

    yield


app = FastAPI(
    title="Single Invites API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(invites.router, prefix="/api/singles/invites", tags=["Single Invites"])
app.include_router(onboarding.router, prefix="/api/singles/onboarding", tags=["Onboarding"])
app.include_router(
    admin_invites.router, prefix="/api/admin/singles/invites", tags=["Admin Single Invites"]
)


# CORS (Allow Frontend)
origins = [
    o.strip()
    for o in os.environ.get(
        "SINGLES_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "single-invites"}


@app.exception_handler(sqlite3.Error)
async def storage_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    logger.error("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
