"""
route_care.api.app

FastAPI app factory for the Route Care service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/exception handlers.
- Initialize and dispose shared infrastructure (DB engine, session factory, identity
  adapter, account directory) in the app lifespan.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from route_care import __version__
from route_care.api.errors import register_exception_handlers
from route_care.api.routers.admin import router as admin_router
from route_care.api.routers.auth import router as auth_router
from route_care.api.routers.caretaker import router as caretaker_router
from route_care.api.routers.health import router as health_router
from route_care.api.routers.nri import router as nri_router
from route_care.api.routers.session import router as session_router
from route_care.db.init_db import init_db
from route_care.db.session import create_engine, create_sessionmaker
from route_care.identity.provider import LocalIdentityProvider
from route_care.observability.logging import configure_logging, get_logger
from route_care.observability.middleware import RequestContextMiddleware
from route_care.services.accounts import AccountDirectory
from route_care.services.auth_service import AuthService
from route_care.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, json=settings.log_json
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Engine, session factory and the shared adapters live on app.state; routers reach
        # them through `route_care.api.deps`.
        engine = create_engine(settings)
        session_factory = create_sessionmaker(engine)
        app.state.engine = engine
        app.state.sessionmaker = session_factory
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)

        identity = LocalIdentityProvider(session_factory=session_factory, settings=settings)
        directory = AccountDirectory(session_factory)
        app.state.identity = identity
        app.state.directory = directory

        await AuthService(
            identity=identity,
            directory=directory,
            session_factory=session_factory,
            settings=settings,
        ).ensure_bootstrap_admin()

        try:
            yield
        finally:
            # Dispose the engine to close pools/FDs gracefully.
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Route Care",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(session_router)
    app.include_router(caretaker_router)
    app.include_router(nri_router)
    app.include_router(admin_router)

    return app


# --- Module Notes -----------------------------------------------------------
# This file stays small: app composition lives here; business logic lives in the
# session/workflow packages and the services layer.
