"""
tests.test_auth_service

Identity adapter, account directory and registration/login flows on a temp database.
"""

from __future__ import annotations

import pytest

from route_care.auth.models import AccountStatus, Principal, Role
from route_care.identity.errors import (
    BLOCKED_MESSAGE,
    AccountBlockedError,
    IdentityError,
    IdentityErrorCode,
    RegistrationError,
    message_for,
)
from route_care.identity.provider import LocalIdentityProvider
from route_care.services.accounts import AccountDirectory
from route_care.services.auth_service import AuthService
from route_care.services.profiles import (
    AlreadyConnectedError,
    CaretakerNotFoundError,
    ProfileService,
)
from route_care.session.guard import GuardIntent
from route_care.session.resolver import SessionResolver


@pytest.fixture
def identity(session_factory, settings) -> LocalIdentityProvider:
    return LocalIdentityProvider(session_factory=session_factory, settings=settings)


@pytest.fixture
def directory(session_factory) -> AccountDirectory:
    return AccountDirectory(session_factory)


@pytest.fixture
def auth(identity, directory, session_factory, settings) -> AuthService:
    return AuthService(
        identity=identity, directory=directory, session_factory=session_factory, settings=settings
    )


async def _register(auth: AuthService, email: str, role: str = "nri"):
    return await auth.register(
        email=email, password="secret-pass", confirm_password="secret-pass", role=role
    )


@pytest.mark.asyncio
async def test_register_creates_account_profile_and_lands_on_dashboard(
    auth: AuthService, directory: AccountDirectory, session_factory
) -> None:
    result = await _register(auth, "Care@Example.com", role="caretaker")

    assert result.principal.email == "care@example.com"
    assert result.access_token
    assert result.session.role is Role.caretaker
    assert result.landing.intent is GuardIntent.redirect_dashboard
    assert result.landing.target == "/caretaker/dashboard"

    record = await directory.get_account(result.principal.subject)
    assert record is not None
    assert record.status is AccountStatus.active

    async with session_factory() as session:
        profile = await ProfileService(session).get_profile(result.principal.subject)
    assert profile.caretaker_code is not None
    assert profile.caretaker_code.startswith("CT-")
    assert len(profile.caretaker_code) == 11


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "password,confirm,role,message",
    [
        ("secret-pass", "other-pass", "nri", "Passwords do not match."),
        ("short", "short", "nri", "Password must be at least 6 characters."),
        ("secret-pass", "secret-pass", None, "Please select a role."),
        ("secret-pass", "secret-pass", "admin", "Please select a role."),
    ],
)
async def test_registration_form_validation(
    auth: AuthService, password: str, confirm: str, role: str | None, message: str
) -> None:
    with pytest.raises(RegistrationError, match=message):
        await auth.register(
            email="x@example.com", password=password, confirm_password=confirm, role=role
        )


@pytest.mark.asyncio
async def test_duplicate_email_is_email_in_use(auth: AuthService) -> None:
    await _register(auth, "dup@example.com")
    with pytest.raises(IdentityError) as excinfo:
        await _register(auth, "DUP@example.com")
    assert excinfo.value.code is IdentityErrorCode.email_in_use
    assert excinfo.value.message == "An account with this email already exists."


@pytest.mark.asyncio
@pytest.mark.parametrize("email", ["not-an-email", "a..b@example.com", "a@-b.com"])
async def test_invalid_email_rejected(auth: AuthService, email: str) -> None:
    with pytest.raises(IdentityError) as excinfo:
        await _register(auth, email)
    assert excinfo.value.code is IdentityErrorCode.invalid_email

    with pytest.raises(IdentityError) as excinfo:
        await auth.login(email=email, password="secret-pass")
    assert excinfo.value.code is IdentityErrorCode.invalid_email


@pytest.mark.asyncio
async def test_unknown_email_and_wrong_password_look_the_same(auth: AuthService) -> None:
    await _register(auth, "nri@example.com")

    with pytest.raises(IdentityError) as unknown:
        await auth.login(email="ghost@example.com", password="secret-pass")
    with pytest.raises(IdentityError) as wrong:
        await auth.login(email="nri@example.com", password="not-the-password")

    assert unknown.value.code is IdentityErrorCode.invalid_credential
    assert wrong.value.code is IdentityErrorCode.invalid_credential


@pytest.mark.asyncio
async def test_login_of_blocked_account_fails_and_signs_out(
    auth: AuthService, directory: AccountDirectory, identity: LocalIdentityProvider
) -> None:
    registered = await _register(auth, "blocked@example.com")
    await directory.set_status(registered.principal.subject, AccountStatus.blocked)

    with pytest.raises(AccountBlockedError) as excinfo:
        await auth.login(email="blocked@example.com", password="secret-pass")
    assert excinfo.value.message == BLOCKED_MESSAGE

    # The token issued at registration predates the forced sign-out.
    assert await identity.verify(registered.access_token) is None
    assert identity.current is None


@pytest.mark.asyncio
async def test_blocked_login_is_never_published_and_signs_out_once(
    auth: AuthService,
    directory: AccountDirectory,
    identity: LocalIdentityProvider,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    registered = await _register(auth, "b@example.com", role="caretaker")
    await auth.logout(registered.principal)
    await directory.set_status(registered.principal.subject, AccountStatus.blocked)

    sign_outs: list[str] = []
    real_sign_out = identity.sign_out

    async def counting_sign_out(principal: Principal) -> None:
        sign_outs.append(principal.subject)
        await real_sign_out(principal)

    monkeypatch.setattr(identity, "sign_out", counting_sign_out)

    events: list[Principal | None] = []
    unsubscribe = identity.on_session_change(events.append)
    watcher = SessionResolver(directory=directory, identity=identity)
    watcher.bind()
    try:
        with pytest.raises(AccountBlockedError):
            await auth.login(email="b@example.com", password="secret-pass")
        state = await watcher.settle()
    finally:
        watcher.close()
        unsubscribe()

    assert all(event is None for event in events)
    assert sign_outs == [registered.principal.subject]
    assert state.principal is None
    assert identity.current is None


@pytest.mark.asyncio
async def test_login_publishes_after_account_check(
    auth: AuthService, identity: LocalIdentityProvider
) -> None:
    registered = await _register(auth, "ok@example.com")
    await auth.logout(registered.principal)

    seen: list[Principal | None] = []
    unsubscribe = identity.on_session_change(seen.append)
    result = await auth.login(email="ok@example.com", password="secret-pass")
    unsubscribe()

    assert seen == [None, result.principal]
    assert identity.current == result.principal

    await identity.sign_out(result.principal)
    principal = await identity.sign_in("OK@example.com", "secret-pass")
    assert identity.current == principal


@pytest.mark.asyncio
async def test_logout_revokes_token(auth: AuthService, identity: LocalIdentityProvider) -> None:
    result = await _register(auth, "leaver@example.com")
    assert await identity.verify(result.access_token) == result.principal

    await auth.logout(result.principal)
    assert await identity.verify(result.access_token) is None

    again = await auth.login(email="leaver@example.com", password="secret-pass")
    assert await identity.verify(again.access_token) is not None


@pytest.mark.asyncio
async def test_session_change_listener_fires_on_subscribe_and_changes(
    auth: AuthService, identity: LocalIdentityProvider
) -> None:
    seen = []
    unsubscribe = identity.on_session_change(seen.append)
    result = await _register(auth, "watch@example.com")
    await auth.logout(result.principal)
    unsubscribe()

    assert seen == [None, result.principal, None]


@pytest.mark.asyncio
async def test_bootstrap_admin_is_idempotent(
    auth: AuthService, directory: AccountDirectory
) -> None:
    first = await auth.ensure_bootstrap_admin()
    second = await auth.ensure_bootstrap_admin()
    assert first is not None and second is not None
    assert first.subject == second.subject
    assert first.role is Role.admin
    assert await directory.count_by_role(Role.admin) == 1


@pytest.mark.asyncio
async def test_connect_caretaker_by_code(auth: AuthService, session_factory) -> None:
    caretaker = await _register(auth, "ct@example.com", role="caretaker")
    nri = await _register(auth, "nri@example.com", role="nri")

    async with session_factory() as session:
        profiles = ProfileService(session)
        code = (await profiles.get_profile(caretaker.principal.subject)).caretaker_code

        connected = await profiles.connect_caretaker(
            nri_id=nri.principal.subject, code=f"  {code.lower()} "
        )
        assert connected.subject == caretaker.principal.subject

        with pytest.raises(AlreadyConnectedError):
            await profiles.connect_caretaker(nri_id=nri.principal.subject, code=code)
        with pytest.raises(CaretakerNotFoundError):
            await profiles.connect_caretaker(nri_id=nri.principal.subject, code="CT-NOPE0000")

        summaries = await profiles.connected_caretakers(nri.principal.subject)
        assert [s.caretaker_id for s in summaries] == [caretaker.principal.subject]
        assert summaries[0].average_rating == 0.0


def test_unknown_identity_codes_fall_back_to_generic_messages() -> None:
    assert message_for("auth/network-request-failed") == "Failed to login. Please try again."
    assert message_for(None, during="signup") == "Failed to create account. Please try again."
