"""
route_care.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, bootstrap admin password).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Every field can be overridden with a `ROUTE_CARE_<FIELD>` environment variable.
    """

    model_config = SettingsConfigDict(env_prefix="ROUTE_CARE_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "route-care"
    log_level: str = "INFO"
    log_json: bool = True

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Identity provider / tokens
    jwt_alg: str = "HS256"
    jwt_issuer: str = "route-care"
    jwt_audience: str = "route-care-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    access_token_ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)
    min_password_length: int = 6
    # False: unknown email and wrong password both fail as invalid-credential.
    reveal_unknown_email: bool = False

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./route_care.db"

    # Request workflow
    max_proof_bytes: int = 500_000
    dashboard_recent_limit: int = 5
    admin_recent_limit: int = 8

    # Optional admin account created at startup (admins cannot self-register).
    bootstrap_admin_email: str | None = None
    bootstrap_admin_password: str | None = Field(default=None, repr=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Tests construct `Settings(...)` directly and pass it to `create_app`; only the
# HTTP dependencies fall back to the cached instance.
