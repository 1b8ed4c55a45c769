"""
route_care.api.routers.auth

Registration, login and logout endpoints.

Responsibilities:
- Hand form input to `AuthService` and return a bearer token plus the landing redirect.
- Leave error mapping to `route_care.api.errors` (identity failures, blocked accounts).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from route_care.api.deps import auth_service_dep
from route_care.api.schemas import DecisionOut, SessionOut
from route_care.auth.deps import get_principal
from route_care.auth.models import Principal
from route_care.services.auth_service import AuthService, LoginResult

router = APIRouter(prefix="/v1/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str = Field(max_length=320)
    password: str = Field(max_length=256)
    confirm_password: str = Field(max_length=256)
    role: str | None = None


class LoginRequest(BaseModel):
    email: str = Field(max_length=320)
    password: str = Field(max_length=256)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session: SessionOut
    landing: DecisionOut


def _token_response(result: LoginResult) -> TokenResponse:
    return TokenResponse(
        access_token=result.access_token,
        session=SessionOut.of(result.session),
        landing=DecisionOut.of(result.landing),
    )


@router.post("/register", response_model=TokenResponse, status_code=HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    auth: AuthService = Depends(auth_service_dep),
) -> TokenResponse:
    result = await auth.register(
        email=body.email,
        password=body.password,
        confirm_password=body.confirm_password,
        role=body.role,
    )
    return _token_response(result)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(auth_service_dep),
) -> TokenResponse:
    return _token_response(await auth.login(email=body.email, password=body.password))


@router.post("/logout", status_code=HTTP_204_NO_CONTENT)
async def logout(
    principal: Principal = Depends(get_principal),
    auth: AuthService = Depends(auth_service_dep),
) -> None:
    await auth.logout(principal)
