"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status

from app.core.config import get_settings
from app.core.document_store import build_document_store
from app.core.kv_store import build_kv_store
from app.core.metrics import build_metrics_response, instrument_http_request
from app.modules.admin.router import router as admin_router
from app.modules.audit.recorder import AuditTrailRecorder
from app.modules.audit.router import router as audit_router
from app.modules.identity.directory import AdminDirectory
from app.modules.identity.inactivity import InactivityRegistry
from app.modules.identity.router import router as identity_router
from app.shared.exceptions import register_exception_handlers
from app.shared.utils import utc_now

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("Starting %s", settings.app_name)

    kv_store = build_kv_store(settings)
    document_store = build_document_store(settings)
    directory = AdminDirectory(document_store, document_name=settings.admin_users_document)
    try:
        await directory.reload()
        logger.info("Admin directory loaded with %d account(s)", len(directory.accounts))
    except Exception:
        # Logins are refused until /ready manages a reload.
        logger.exception("Failed to load admin directory")

    app.state.kv_store = kv_store
    app.state.document_store = document_store
    app.state.admin_directory = directory
    app.state.audit_recorder = AuditTrailRecorder(
        kv_store,
        key=settings.audit_log_key,
        max_entries=settings.audit_log_max_entries,
    )
    app.state.inactivity = InactivityRegistry(settings.inactivity_timeout_seconds)

    yield

    logger.info("Shutting down %s", settings.app_name)
    app.state.inactivity.close()
    await document_store.close()
    await kv_store.close()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)
app.middleware("http")(instrument_http_request)

register_exception_handlers(app)

app.include_router(identity_router, prefix=settings.api_prefix)
app.include_router(admin_router, prefix=settings.api_prefix)
app.include_router(audit_router, prefix=settings.api_prefix)


@app.get("/health")
async def healthcheck() -> dict[str, str]:
    """Liveness probe endpoint."""
    return {"status": "ok"}


@app.get("/ready")
async def readiness_check(request: Request) -> dict[str, str]:
    """Readiness probe endpoint with admin directory check."""
    directory: AdminDirectory | None = getattr(request.app.state, "admin_directory", None)
    if directory is not None and not directory.is_loaded:
        try:
            await directory.reload()
        except Exception:
            logger.exception("Admin directory readiness check failed")
    if directory is None or not directory.is_loaded:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin directory is not loaded",
        )
    return {
        "status": "ready",
        "adminDirectory": "ok",
        "timestamp": utc_now().isoformat(),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint(_: Request) -> Response:
    """Prometheus metrics endpoint."""
    return build_metrics_response()
