"""
tests.conftest

Shared fixtures: per-test SQLite database, app with lifespan, in-process HTTP client.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from route_care.api.app import create_app
from route_care.db.init_db import init_db
from route_care.db.session import create_engine, create_sessionmaker
from route_care.settings import Settings

ADMIN_EMAIL = "admin@routecare.example.com"
ADMIN_PASSWORD = "admin-pass-123"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        log_json=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'route_care.db'}",
        jwt_secret="test-secret-with-enough-bytes-for-hs256",
        bootstrap_admin_email=ADMIN_EMAIL,
        bootstrap_admin_password=ADMIN_PASSWORD,
    )


@pytest_asyncio.fixture
async def session_factory(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not run the lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client: httpx.AsyncClient) -> Callable[..., Awaitable[str]]:
    async def _register(email: str, role: str, password: str = "secret-pass") -> str:
        r = await client.post(
            "/v1/auth/register",
            json={
                "email": email,
                "password": password,
                "confirm_password": password,
                "role": role,
            },
        )
        assert r.status_code == 201, r.text
        return r.json()["access_token"]

    return _register


@pytest.fixture
def login(client: httpx.AsyncClient) -> Callable[..., Awaitable[str]]:
    async def _login(email: str, password: str = "secret-pass") -> str:
        r = await client.post("/v1/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return r.json()["access_token"]

    return _login
