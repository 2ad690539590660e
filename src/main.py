"""taskdeck - personal task tracker."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.dashboard_router import router as dashboard_router


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Refuse to start in production with the default session secret."""
    logger.info("startup_validation_begin")

    try:
        secret = settings.require_credential("secret_key", "Session signing")
        if settings.is_production and secret == "change-me-in-production":
            raise ValueError("SECRET_KEY must be changed before running in production")
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    logger.info("startup_validation_complete", extra={"status": "ok"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()
    validate_startup_configuration()

    await init_db()
    logger.info("Database initialized")
    yield
    await close_connection()


app = FastAPI(
    title="taskdeck",
    description="Personal task tracker",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

app.include_router(dashboard_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
