"""FastAPI application entry point.

Configures CORS, structured logging, lifespan events (including the
APScheduler expiration sweep), domain error rendering and router
registration.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.errors import LinkAppError, TransientStoreError
from app.core.logging import setup_logging
from app.db.registry import get_stores
from app.routers import chatrooms, health, links, users
from app.scheduler.jobs import shutdown_scheduler, start_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: startup and shutdown hooks."""
    setup_logging()
    logger.info("Application starting up")
    get_stores()
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    yield
    shutdown_scheduler()
    logger.info("Application shutting down")


app = FastAPI(
    title="Link Matching API",
    description="Proximity matching, time-boxed links and gated chatrooms",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(LinkAppError)
async def linkapp_error_handler(request: Request, exc: LinkAppError) -> JSONResponse:
    if isinstance(exc, TransientStoreError):
        logger.error(
            "transient_store_error",
            extra={"path": request.url.path, "error_message": exc.detail},
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# ---------------------------------------------------------------------------
# CORS Configuration
# ---------------------------------------------------------------------------
_raw_origins = settings.ALLOWED_ORIGINS.strip()
if _raw_origins == "*":
    _allowed_origins: list[str] = ["*"]
else:
    _allowed_origins = [o.strip() for o in _raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Router Registration
# ---------------------------------------------------------------------------
app.include_router(health.router, tags=["Health"])
app.include_router(users.router, prefix="/api/v1", tags=["Users"])
app.include_router(links.router, prefix="/api/v1", tags=["Links"])
app.include_router(chatrooms.router, prefix="/api/v1", tags=["Chatrooms"])
