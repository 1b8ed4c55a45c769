"""
route_care.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Encapsulate app.state access patterns (sessionmaker, identity adapter, account directory).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from route_care.identity.provider import LocalIdentityProvider
from route_care.services.accounts import AccountDirectory
from route_care.services.auth_service import AuthService
from route_care.settings import Settings
from route_care.workflow.engine import RequestLifecycleEngine


def settings_dep(request: Request) -> Settings:
    # The settings the app was built with (tests pass their own to `create_app`).
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # Created in the lifespan of `route_care.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


def identity_dep(request: Request) -> LocalIdentityProvider:
    return request.app.state.identity  # type: ignore[attr-defined]


def directory_dep(request: Request) -> AccountDirectory:
    return request.app.state.directory  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


def auth_service_dep(
    identity: LocalIdentityProvider = Depends(identity_dep),
    directory: AccountDirectory = Depends(directory_dep),
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
    settings: Settings = Depends(settings_dep),
) -> AuthService:
    return AuthService(
        identity=identity,
        directory=directory,
        session_factory=session_factory,
        settings=settings,
    )


def lifecycle_dep(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> RequestLifecycleEngine:
    return RequestLifecycleEngine(session=session, max_proof_bytes=settings.max_proof_bytes)
