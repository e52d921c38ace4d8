"""FastAPI application entry point.

This module wires together the API routers, configures middleware,
maps domain errors onto HTTP responses and starts the background
maintenance loop that persists chore expiry and checks the ledger.
"""

import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from family_chores.routes import (
    members,
    points,
    chores,
    templates,
    wishlist,
    changes,
)
from family_chores.database import create_db_and_tables, async_session
from family_chores.errors import FamilyChoresError, LedgerInconsistency
from family_chores import expiry, ledger
import asyncio

# The log level can be controlled with an environment variable so
# deployments can adjust verbosity without code changes.
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL))
logger = logging.getLogger(__name__)

MAINTENANCE_INTERVAL_SECONDS = int(os.getenv("MAINTENANCE_INTERVAL_SECONDS", "3600"))

app = FastAPI(title="Family Chores API")

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    """Initialize the database and kick off background tasks."""

    await create_db_and_tables()
    asyncio.create_task(maintenance_task())


async def run_maintenance() -> list[int]:
    """One pass of expiry persistence followed by a ledger check."""

    async with async_session() as session:
        expired_ids = await expiry.sweep(session)
        try:
            checked = await ledger.reconcile(session)
        except LedgerInconsistency:
            # already logged at CRITICAL per member; keep sweeping next round
            checked = None
        logger.info(
            "Maintenance pass: %s chore(s) expired, %s member balance(s) verified",
            len(expired_ids),
            checked if checked is not None else "not all",
        )
    return expired_ids


async def maintenance_task():
    """Background coroutine that repeats :func:`run_maintenance`."""

    logger.info("Starting maintenance task")
    while True:
        try:
            await run_maintenance()
        except Exception as exc:
            logger.exception("Maintenance task failed: %s", exc)
        await asyncio.sleep(MAINTENANCE_INTERVAL_SECONDS)


app.include_router(members.router)
app.include_router(points.router)
app.include_router(chores.router)
app.include_router(templates.router)
app.include_router(wishlist.router)
app.include_router(changes.router)


@app.get("/")
async def read_root():
    return {"message": "Welcome to Family Chores API"}


@app.exception_handler(FamilyChoresError)
async def domain_exception_handler(request: Request, exc: FamilyChoresError):
    """Render engine errors with their stable code."""
    if exc.status_code >= 500:
        logger.error("%s during request %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler that logs the stack trace once."""
    logger.exception("Unhandled error during request %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )
