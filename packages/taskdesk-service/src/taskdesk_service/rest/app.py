"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskdesk_service.db.engine import close_db, create_schema, get_session_factory, init_db
from taskdesk_service.db.seed import seed_reference_data
from taskdesk_service.jobs import RefreshTokenSweeper
from taskdesk_service.logging_config import configure_logging
from taskdesk_service.rest.errors import register_exception_handlers
from taskdesk_service.rest.middleware import RequestContextMiddleware
from taskdesk_service.rest.routes.auth import router as auth_router
from taskdesk_service.rest.routes.health import router as health_router
from taskdesk_service.rest.routes.tasks import router as tasks_router
from taskdesk_service.rest.routes.users import router as users_router
from taskdesk_service.settings import settings

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db()
    if settings.db_create_all:
        await create_schema()
        async with get_session_factory()() as session:
            await seed_reference_data(session)

    sweeper: RefreshTokenSweeper | None = None
    if settings.refresh_token_sweep_enabled:
        sweeper = RefreshTokenSweeper(
            get_session_factory(), settings.refresh_token_sweep_interval_seconds
        )
        sweeper.start()
    app.state.sweeper = sweeper

    logger.info("service_started")
    yield

    if sweeper is not None:
        await sweeper.stop()
    await close_db()
    logger.info("service_stopped")


def create_app() -> FastAPI:
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Taskdesk API",
        description="Task management with token-based authentication",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Public routes
    app.include_router(health_router, tags=["health"])

    # signup/signin/refresh/logout are public; the rest check authorities per route
    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(users_router, prefix=settings.api_prefix)
    app.include_router(tasks_router, prefix=settings.api_prefix)

    return app
