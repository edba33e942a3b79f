# fasttrack/main.py

import logging
import asyncio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from contextlib import asynccontextmanager

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.outbound.persistence.database import engine, get_db_context
from fasttrack.adapters.outbound.persistence.models import Base

# ─── UNIQUE LOGGING CONFIGURATION ─────────────────────────────────────────────────
level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL, logging.INFO)
logging.basicConfig(
    level=level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup creates missing tables and starts the background jobs;
    shutdown cancels them and closes the remote token authority client.
    """
    from fasttrack.adapters.inbound.api.deps import close_remote_authority

    logger.info("Application starting up...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.background_tasks = [
        asyncio.create_task(run_periodically(
            "artifact sweep", settings.ARTIFACT_SWEEP_INTERVAL_SECONDS, sweep_artifacts
        )),
        asyncio.create_task(run_periodically(
            "machine token maintenance", settings.TOKEN_CLEANUP_INTERVAL_SECONDS, maintain_machine_tokens
        )),
    ]

    yield

    logger.info("Application shutting down...")
    for task in app.state.background_tasks:
        task.cancel()
    await asyncio.gather(*app.state.background_tasks, return_exceptions=True)
    await close_remote_authority()


app = FastAPI(
    title="FastTrack",
    description="Public procurement fast track: market configuration, candidate applications, editor access",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# Middlewares (the last one added is the outermost)
from fasttrack.shared.middleware import (
    AsyncExceptionMiddleware,
    AsyncRequestLoggingMiddleware,
    AsyncRateLimitingMiddleware,
    AsyncSecurityHeadersMiddleware
)

app.add_middleware(AsyncRequestLoggingMiddleware)
app.add_middleware(AsyncExceptionMiddleware)
app.add_middleware(AsyncRateLimitingMiddleware)
app.add_middleware(AsyncSecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH"],
    allow_headers=["Authorization", "Content-Type"],
)

# Routers
from fasttrack.adapters.inbound.api.v1.router import api_router as api_v1_router

app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def redirect_to_docs():
    return RedirectResponse(url="/docs")


@app.get("/up", include_in_schema=False)
async def health_check():
    return {"status": "ok"}


# ── BACKGROUND JOBS ───────────────────────────────────────────────────────────
async def sweep_artifacts():
    """Regenerate missing attestations and dossiers of submitted applications."""
    from fasttrack.adapters.inbound.api.deps import get_blob_storage
    from fasttrack.application.use_cases.artifact_use_cases import ArtifactService

    async with get_db_context() as db:
        reports = await ArtifactService(db, get_blob_storage()).sweep()
        if reports:
            failed = sum(1 for report in reports if not report.complete)
            logger.info(f"Artifact sweep done: {len(reports)} processed, {failed} still incomplete")


async def maintain_machine_tokens():
    """Drop expired machine tokens and report the machine-auth state of each ready editor."""
    from fasttrack.adapters.inbound.api.deps import build_token_authority
    from fasttrack.application.use_cases.credential_use_cases import CredentialIssuer, MachineAuthMonitor

    async with get_db_context() as db:
        monitor = MachineAuthMonitor(db, CredentialIssuer(db, build_token_authority(db)))
        removed = await monitor.cleanup_all()
        logger.info(f"Cleaned up {removed} expired machine tokens")
        await monitor.check_all_editors()


async def run_periodically(name: str, interval_seconds: int, job):
    """Run ``job`` every ``interval_seconds``, first run after one interval."""
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            await job()
        except asyncio.CancelledError:
            logger.info(f"Background job '{name}' cancelled")
            break
        except Exception as e:
            logger.exception(f"Error in background job '{name}': {e}")
