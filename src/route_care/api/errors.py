"""
route_care.api.errors

Exception handlers mapping domain failures to HTTP responses.

Responsibilities:
- Keep routers free of try/except: services raise typed errors, handlers pick the status.
- Always return a human-readable `detail`; guard refusals also carry `redirect_to`.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from route_care.auth.deps import GuardRedirect
from route_care.identity.errors import (
    AccountBlockedError,
    IdentityError,
    IdentityErrorCode,
    RegistrationError,
)
from route_care.observability.logging import get_logger
from route_care.services.accounts import AccountNotFoundError, AccountStoreError
from route_care.services.catalog import ServiceValidationError
from route_care.services.profiles import (
    AlreadyConnectedError,
    CaretakerNotFoundError,
    ProfileNotFoundError,
)
from route_care.session.guard import BLOCKED_LOGIN_PATH, GuardIntent
from route_care.workflow.errors import (
    DuplicateReviewError,
    NotRequestOwnerError,
    RequestNotFoundError,
    ServiceNotFoundError,
    WorkflowStoreError,
    WorkflowValidationError,
)

log = get_logger(__name__)

# Starlette renamed the 422 constant; the number is stable.
HTTP_422_UNPROCESSABLE = 422

_IDENTITY_STATUS: dict[IdentityErrorCode, int] = {
    IdentityErrorCode.email_in_use: HTTP_409_CONFLICT,
    IdentityErrorCode.invalid_email: HTTP_400_BAD_REQUEST,
    IdentityErrorCode.weak_password: HTTP_400_BAD_REQUEST,
    IdentityErrorCode.not_found: HTTP_401_UNAUTHORIZED,
    IdentityErrorCode.wrong_password: HTTP_401_UNAUTHORIZED,
    IdentityErrorCode.invalid_credential: HTTP_401_UNAUTHORIZED,
    IdentityErrorCode.account_blocked: HTTP_403_FORBIDDEN,
}

_GUARD_STATUS: dict[GuardIntent, int] = {
    GuardIntent.loading: HTTP_503_SERVICE_UNAVAILABLE,
    GuardIntent.redirect_login: HTTP_401_UNAUTHORIZED,
    GuardIntent.redirect_blocked: HTTP_403_FORBIDDEN,
    GuardIntent.redirect_dashboard: HTTP_403_FORBIDDEN,
}

_NOT_FOUND = (
    RequestNotFoundError,
    ServiceNotFoundError,
    NotRequestOwnerError,
    CaretakerNotFoundError,
    ProfileNotFoundError,
)
_CONFLICT = (DuplicateReviewError, AlreadyConnectedError)
_UNPROCESSABLE = (WorkflowValidationError, ServiceValidationError, RegistrationError)


def _error(status_code: int, detail: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, **extra})


async def _identity_error(_: Request, exc: IdentityError) -> JSONResponse:
    extra: dict[str, Any] = {"code": exc.code.value}
    if isinstance(exc, AccountBlockedError):
        extra["redirect_to"] = BLOCKED_LOGIN_PATH
    return _error(_IDENTITY_STATUS.get(exc.code, HTTP_400_BAD_REQUEST), exc.message, **extra)


async def _guard_redirect(_: Request, exc: GuardRedirect) -> JSONResponse:
    decision = exc.decision
    detail = {
        GuardIntent.loading: "Session is still loading. Please try again.",
        GuardIntent.redirect_login: "Please sign in.",
        GuardIntent.redirect_blocked: "Your account has been blocked.",
        GuardIntent.redirect_dashboard: "This page belongs to another role.",
    }.get(decision.intent, "Not allowed.")
    return _error(
        _GUARD_STATUS.get(decision.intent, HTTP_403_FORBIDDEN),
        detail,
        intent=decision.intent.value,
        redirect_to=decision.target,
    )


async def _not_found(_: Request, exc: Exception) -> JSONResponse:
    return _error(HTTP_404_NOT_FOUND, str(exc))


async def _conflict(_: Request, exc: Exception) -> JSONResponse:
    return _error(HTTP_409_CONFLICT, str(exc))


async def _unprocessable(_: Request, exc: Exception) -> JSONResponse:
    return _error(HTTP_422_UNPROCESSABLE, str(exc))


async def _account_not_found(_: Request, exc: Exception) -> JSONResponse:
    return _error(HTTP_404_NOT_FOUND, "Account not found")


async def _store_unavailable(request: Request, exc: Exception) -> JSONResponse:
    log.warning("store_unavailable", path=request.url.path, error=str(exc))
    if isinstance(exc, WorkflowStoreError):
        detail = str(exc)
    else:
        detail = "Service unavailable. Please try again."
    return _error(HTTP_503_SERVICE_UNAVAILABLE, detail, retryable=True)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IdentityError, _identity_error)
    app.add_exception_handler(GuardRedirect, _guard_redirect)
    for exc_type in _NOT_FOUND:
        app.add_exception_handler(exc_type, _not_found)
    for exc_type in _CONFLICT:
        app.add_exception_handler(exc_type, _conflict)
    for exc_type in _UNPROCESSABLE:
        app.add_exception_handler(exc_type, _unprocessable)
    app.add_exception_handler(AccountNotFoundError, _account_not_found)
    app.add_exception_handler(WorkflowStoreError, _store_unavailable)
    app.add_exception_handler(AccountStoreError, _store_unavailable)
