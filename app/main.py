"""FastAPI application entrypoint. No business logic; only wiring, middleware and start-up."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from app.api.errors import setup_exception_handlers
from app.api.v1 import router as v1_router
from app.core.config import get_settings, settings_provider
from app.core.database import get_session_factory
from app.core.logging import configure_logging
from app.services.bootstrap import AdminCredentials, ensure_admin_user, seed_reference_data

logger = logging.getLogger(__name__)


def run_startup_tasks() -> None:
    """Seed reference data and reconcile the admin account before any request is served."""
    current = get_settings()
    credentials = AdminCredentials(
        username=current.ADMIN_USERNAME,
        password=current.ADMIN_PASSWORD.get_secret_value() if current.ADMIN_PASSWORD else None,
    )
    seed = current.SEED_REFERENCE_DATA
    db = get_session_factory()()
    try:
        if seed:
            seed_reference_data(db)
        else:
            logger.info("Reference data seeding disabled (SEED_REFERENCE_DATA=false)")
        ensure_admin_user(db, credentials)
    finally:
        credentials.clear()
        # Drop the plaintext from the live settings snapshot as well.
        settings_provider.replace(ADMIN_PASSWORD=None)
        db.close()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    configure_logging(get_settings().LOG_LEVEL)
    run_startup_tasks()
    logger.info("Start-up complete; accepting requests")
    yield


def create_app() -> FastAPI:
    """
    Build the application. Settings are validated here and only the values needed for wiring
    are read; no snapshot is kept at module level.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging()
        logger.critical("Invalid configuration, refusing to start: %s", e)
        raise SystemExit(1) from e
    is_dev = settings.APP_ENV == "dev"
    api_prefix = settings.API_PREFIX

    application = FastAPI(
        title="Warden API",
        version="0.1.0",
        docs_url="/docs" if is_dev else None,
        redoc_url="/redoc" if is_dev else None,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if is_dev else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(application)
    application.include_router(v1_router, prefix=api_prefix)

    @application.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Warden API"}

    return application


app = create_app()
