# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Roster Service
==============
Coordinates role signups for chat-announced group runs: claims and releases
from announcement buttons, the signup sheet mirror, and the debounced
"group formed" notice.

Port: 8010
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from roster.controllers import event_controller, signup_controller, system_controller
from roster.core.config import settings
from roster.core.dependencies import get_notifier, get_registry
from roster.core.logging import get_logger
from roster.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Log startup; cancel pending group notices on shutdown."""
    logger.info(
        "Roster service starting: version=%s, debounce=%ss",
        settings.SERVICE_VERSION, settings.NOTIFY_DEBOUNCE_SECONDS,
    )
    yield
    notifier = get_notifier()
    pending = len(notifier.pending())
    await notifier.shutdown()
    logger.info(
        "Roster service shutting down: %d events in memory, %d pending notices dropped",
        get_registry().count(), pending,
    )


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Roster Service",
    description="Role signup coordination for chat-announced group runs.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


# ── Global exception handler ─────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc), "request_id": req_id},
    )


# ── Routers ───────────────────────────────────────────────────────────────
app.include_router(system_controller.router)
app.include_router(signup_controller.router)
app.include_router(event_controller.router)


# ── Entrypoint ────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
