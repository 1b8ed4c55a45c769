"""
route_care.identity.provider

Identity provider adapter.

Responsibilities:
- Define the contract the core consumes (`IdentityProvider`): sign-up, sign-in, sign-out,
  token issue/verify and session-change notifications.
- Provide the store-backed implementation used by the service (`LocalIdentityProvider`).

Notes:
- Failures are raised as `IdentityError` with a typed code; callers never see passlib,
  email-validator or PyJWT exceptions.
- `verify_credentials` checks a password without signing in; `publish` makes the
  principal current and notifies listeners. `sign_in` is both.
- Sign-out bumps the credential epoch, so every token issued before it stops verifying.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import Protocol

from email_validator import EmailNotValidError, validate_email
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from route_care.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, issue_token
from route_care.auth.models import Principal
from route_care.db.repositories.credentials import CredentialRepo
from route_care.identity.errors import IdentityError, IdentityErrorCode
from route_care.observability.logging import get_logger
from route_care.settings import Settings

log = get_logger(__name__)

SessionListener = Callable[[Principal | None], None]

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class IdentityProvider(Protocol):
    async def sign_up(self, email: str, password: str) -> Principal: ...

    async def sign_in(self, email: str, password: str) -> Principal: ...

    async def verify_credentials(self, email: str, password: str) -> Principal: ...

    def publish(self, principal: Principal) -> None: ...

    async def sign_out(self, principal: Principal) -> None: ...

    def issue_token(self, principal: Principal) -> str: ...

    async def verify(self, token: str) -> Principal | None: ...

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]: ...


def normalize_email(email: str) -> str:
    return email.strip().lower()


def checked_email(email: str) -> str:
    """Normalize and syntax-check an address (no DNS lookups)."""
    try:
        return validate_email(normalize_email(email), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise IdentityError(IdentityErrorCode.invalid_email) from e


class LocalIdentityProvider:
    """
    Identity adapter backed by the `credentials` table.

    `current` tracks the principal of the most recent sign-in/sign-up on this adapter
    instance; listeners registered with `on_session_change` see every change to it.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._jwt = JwtConfig.from_settings(settings)
        self._listeners: list[SessionListener] = []
        self._current: Principal | None = None

    @property
    def current(self) -> Principal | None:
        return self._current

    async def sign_up(self, email: str, password: str) -> Principal:
        email = checked_email(email)
        if len(password) < self._settings.min_password_length:
            raise IdentityError(IdentityErrorCode.weak_password)

        async with self._session_factory() as session:
            repo = CredentialRepo(session)
            if await repo.get_by_email(email) is not None:
                raise IdentityError(IdentityErrorCode.email_in_use)
            try:
                cred = await repo.create(email=email, password_hash=pwd_context.hash(password))
                await session.commit()
            except IntegrityError as e:
                # Lost a race with a concurrent sign-up for the same email.
                await session.rollback()
                raise IdentityError(IdentityErrorCode.email_in_use) from e

        principal = Principal(subject=cred.subject, email=cred.email, epoch=cred.epoch)
        log.info("signed_up", subject=principal.subject)
        self._set_current(principal)
        return principal

    async def sign_in(self, email: str, password: str) -> Principal:
        principal = await self.verify_credentials(email, password)
        self.publish(principal)
        return principal

    async def verify_credentials(self, email: str, password: str) -> Principal:
        """Check email/password without changing `current` or notifying listeners."""
        email = checked_email(email)

        async with self._session_factory() as session:
            cred = await CredentialRepo(session).get_by_email(email)

        if cred is None:
            raise IdentityError(
                IdentityErrorCode.not_found
                if self._settings.reveal_unknown_email
                else IdentityErrorCode.invalid_credential
            )
        if not self._password_matches(password, cred.password_hash):
            raise IdentityError(
                IdentityErrorCode.wrong_password
                if self._settings.reveal_unknown_email
                else IdentityErrorCode.invalid_credential
            )

        return Principal(subject=cred.subject, email=cred.email, epoch=cred.epoch)

    def publish(self, principal: Principal) -> None:
        log.info("signed_in", subject=principal.subject)
        self._set_current(principal)

    async def provision(self, email: str, password: str) -> Principal:
        """Get-or-create a credential without touching `current` (operator bootstrap)."""
        email = checked_email(email)
        async with self._session_factory() as session:
            repo = CredentialRepo(session)
            cred = await repo.get_by_email(email)
            if cred is None:
                cred = await repo.create(email=email, password_hash=pwd_context.hash(password))
                await session.commit()
                log.info("credential_provisioned", subject=cred.subject)
        return Principal(subject=cred.subject, email=cred.email, epoch=cred.epoch)

    async def sign_out(self, principal: Principal) -> None:
        async with self._session_factory() as session:
            await CredentialRepo(session).bump_epoch(principal.subject)
            await session.commit()

        log.info("signed_out", subject=principal.subject)
        if self._current is None or self._current.subject == principal.subject:
            self._set_current(None)

    def issue_token(self, principal: Principal) -> str:
        return issue_token(
            cfg=self._jwt,
            subject=principal.subject,
            email=principal.email,
            epoch=principal.epoch,
            ttl=timedelta(minutes=self._settings.access_token_ttl_minutes),
        )

    async def verify(self, token: str) -> Principal | None:
        try:
            payload = decode_and_validate(cfg=self._jwt, token=token)
        except JwtValidationError as e:
            log.debug("token_rejected", reason=str(e))
            return None

        subject = str(payload.get("sub", ""))
        if not subject:
            return None
        async with self._session_factory() as session:
            cred = await CredentialRepo(session).get(subject)
        # A bumped epoch means the principal signed out (or was forced out) since issue.
        if cred is None or cred.epoch != payload.get("sep"):
            return None
        return Principal(subject=cred.subject, email=cred.email, epoch=cred.epoch)

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        self._listeners.append(callback)
        # Fire once on subscription so late subscribers learn the current state.
        callback(self._current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current(self, principal: Principal | None) -> None:
        self._current = principal
        for listener in list(self._listeners):
            listener(principal)

    @staticmethod
    def _password_matches(password: str, password_hash: str) -> bool:
        try:
            return pwd_context.verify(password, password_hash)
        except ValueError:
            # Unrecognized/corrupt hash: treat as a credential mismatch.
            return False


# --- Module Notes -----------------------------------------------------------
# The HTTP layer resolves every request from its bearer token (`verify`) and never
# relies on `current`; the notification stream serves long-lived clients that bind a
# `SessionResolver` to the adapter.
