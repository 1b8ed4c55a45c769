"""
route_care.services.auth_service

Registration, login and logout on top of the identity adapter and the account directory.

Responsibilities:
- Validate the registration form, then create credential, account and profile in order.
- Resolve the session between credential check and sign-in, so blocked accounts are
  signed out once and refused without ever being published as signed in.
- Provision the bootstrap admin configured in settings.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from route_care.auth.models import SELF_SERVICE_ROLES, AccountStatus, Principal, Role
from route_care.identity.errors import AccountBlockedError, RegistrationError
from route_care.identity.provider import LocalIdentityProvider
from route_care.observability.logging import get_logger
from route_care.services.accounts import AccountDirectory, AccountRecord
from route_care.services.profiles import ProfileService
from route_care.session.guard import GuardDecision, landing_target
from route_care.session.resolver import SessionResolver
from route_care.session.state import SessionState
from route_care.settings import Settings

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class LoginResult:
    principal: Principal
    access_token: str
    session: SessionState
    landing: GuardDecision


class AuthService:
    def __init__(
        self,
        *,
        identity: LocalIdentityProvider,
        directory: AccountDirectory,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> None:
        self._identity = identity
        self._directory = directory
        self._session_factory = session_factory
        self._settings = settings

    async def register(
        self,
        *,
        email: str,
        password: str,
        confirm_password: str,
        role: str | None,
    ) -> LoginResult:
        if password != confirm_password:
            raise RegistrationError("Passwords do not match.")
        if len(password) < self._settings.min_password_length:
            raise RegistrationError(
                f"Password must be at least {self._settings.min_password_length} characters."
            )
        parsed = Role.parse(role)
        if parsed not in SELF_SERVICE_ROLES:
            raise RegistrationError("Please select a role.")

        principal = await self._identity.sign_up(email, password)
        await self._directory.create_account(principal.subject, parsed, email=principal.email)
        async with self._session_factory() as session:
            await ProfileService(session).create_profile(principal.subject, parsed)

        log.info("registered", subject=principal.subject, role=parsed.value)
        return await self._open_session(principal)

    async def login(self, *, email: str, password: str) -> LoginResult:
        # Nothing is published until the account's standing is known.
        principal = await self._identity.verify_credentials(email, password)
        result = await self._open_session(principal)
        if result.session.evicted:
            # The resolver has already signed the principal out.
            log.info("login_refused_blocked", subject=principal.subject)
            raise AccountBlockedError()
        self._identity.publish(principal)
        return result

    async def logout(self, principal: Principal) -> None:
        await self._identity.sign_out(principal)

    async def ensure_bootstrap_admin(self) -> AccountRecord | None:
        email = self._settings.bootstrap_admin_email
        password = self._settings.bootstrap_admin_password
        if not email or not password:
            return None

        principal = await self._identity.provision(email, password)
        existing = await self._directory.get_account(principal.subject)
        if existing is not None:
            return existing
        record = await self._directory.create_account(
            principal.subject, Role.admin, email=principal.email, status=AccountStatus.active
        )
        async with self._session_factory() as session:
            await ProfileService(session).create_profile(principal.subject, Role.admin)
        log.info("bootstrap_admin_created", subject=principal.subject)
        return record

    async def _open_session(self, principal: Principal) -> LoginResult:
        resolver = SessionResolver(directory=self._directory, identity=self._identity)
        state = await resolver.resolve(principal)
        # Token is minted after resolution: an evicted principal's epoch has moved on.
        token = "" if state.evicted else self._identity.issue_token(principal)
        return LoginResult(
            principal=principal,
            access_token=token,
            session=state,
            landing=landing_target(state),
        )
