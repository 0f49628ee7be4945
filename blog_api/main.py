from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth import CredentialService, IdentityResolver
from .db import Database
from .errors import register_exception_handlers
from .middleware import SecurityHeadersMiddleware
from .routers import auth, posts, system
from .seed import ensure_seed_data
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config()
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    return cfg


def run_migrations(database: Database) -> None:
    """Upgrade the schema to head on the app's own engine."""
    logger.info("run_migrations: Starting...")
    try:
        cfg = _alembic_config()
        with database.engine.begin() as connection:
            cfg.attributes["connection"] = connection
            command.upgrade(cfg, "head")
        logger.info("run_migrations: Completed successfully.")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise


def run_startup_tasks(app: FastAPI) -> None:
    settings: Settings = app.state.settings
    database: Database = app.state.database

    if settings.auto_migrate:
        run_migrations(database)
    else:
        logger.info("run_startup_tasks: DB_AUTO_MIGRATE is off, skipping migrations.")

    session = database.SessionLocal()
    try:
        ensure_seed_data(session, settings, app.state.credentials)
    finally:
        session.close()
    logger.info("Startup tasks completed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    # Server won't start until these complete
    run_startup_tasks(app)
    # Uptime reported by /health
    app.state.started_at = time.time()
    logger.info("Blog API server ready")
    yield
    logger.info("Shutting down application...")
    app.state.database.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; serve with `uvicorn --factory blog_api.main:create_app`."""
    if settings is None:
        settings = load_settings()

    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Blog API",
        version="1.0.0",
        description="Blogging API with posts, comments and likes",
        lifespan=lifespan,
    )

    credentials = CredentialService.from_settings(settings)
    app.state.settings = settings
    app.state.database = Database(settings.database_url, echo=settings.log_level == "DEBUG")
    app.state.credentials = credentials
    app.state.resolver = IdentityResolver(credentials)

    if "*" in settings.cors_origins:
        logger.warning(
            "CORS is configured to allow all origins. "
            "This is insecure for production. Set CORS_ORIGINS to specific domains."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
        max_age=600,  # Cache preflight requests for 10 minutes
    )
    app.add_middleware(SecurityHeadersMiddleware, production=settings.is_production)

    register_exception_handlers(app)

    app.include_router(system.router)
    app.include_router(auth.router)
    app.include_router(posts.router)

    return app
