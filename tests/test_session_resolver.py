"""
tests.test_session_resolver

Session resolver behaviour against in-memory fakes of the identity adapter and the
account directory.
"""

from __future__ import annotations

import asyncio

import pytest

from route_care.auth.models import AccountStatus, Principal, Role
from route_care.services.accounts import AccountRecord, AccountStoreError
from route_care.session.guard import AccessGuard, GuardIntent
from route_care.session.resolver import SessionResolver
from route_care.session.state import SessionState

ALICE = Principal(subject="alice", email="alice@example.com")
BOB = Principal(subject="bob", email="bob@example.com")


class FakeDirectory:
    def __init__(self) -> None:
        self.accounts: dict[str, AccountRecord] = {}
        self.fail = False
        # subject -> event the lookup waits on before answering
        self.gates: dict[str, asyncio.Event] = {}

    def put(self, principal: Principal, role: Role, status: AccountStatus) -> None:
        self.accounts[principal.subject] = AccountRecord(
            subject=principal.subject, email=principal.email, role=role, status=status
        )

    async def get_account(self, subject: str) -> AccountRecord | None:
        gate = self.gates.get(subject)
        if gate is not None:
            await gate.wait()
        if self.fail:
            raise AccountStoreError("store unreachable")
        return self.accounts.get(subject)


class FakeIdentity:
    def __init__(self) -> None:
        self.current: Principal | None = None
        self.listeners = []
        self.sign_outs: list[Principal] = []

    async def sign_out(self, principal: Principal) -> None:
        self.sign_outs.append(principal)
        self.set_current(None)

    def on_session_change(self, callback):
        self.listeners.append(callback)
        callback(self.current)
        return lambda: self.listeners.remove(callback)

    def set_current(self, principal: Principal | None) -> None:
        self.current = principal
        for listener in list(self.listeners):
            listener(principal)


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def resolver(directory: FakeDirectory, identity: FakeIdentity) -> SessionResolver:
    return SessionResolver(directory=directory, identity=identity)


@pytest.mark.asyncio
async def test_absent_principal_resolves_signed_out(resolver: SessionResolver) -> None:
    state = await resolver.resolve(None)
    assert state == SessionState(resolved=True)


@pytest.mark.asyncio
async def test_active_account_resolves_role_and_status(
    resolver: SessionResolver, directory: FakeDirectory
) -> None:
    directory.put(ALICE, Role.nri, AccountStatus.active)
    state = await resolver.resolve(ALICE)
    assert state.principal == ALICE
    assert state.role is Role.nri
    assert state.status is AccountStatus.active
    assert state.is_authenticated


@pytest.mark.asyncio
async def test_missing_account_resolves_without_role(resolver: SessionResolver) -> None:
    state = await resolver.resolve(ALICE)
    assert state.resolved
    assert state.principal == ALICE
    assert state.role is None
    assert state.status is None


@pytest.mark.asyncio
async def test_store_failure_degrades_to_no_role(
    resolver: SessionResolver, directory: FakeDirectory
) -> None:
    directory.put(ALICE, Role.caretaker, AccountStatus.active)
    directory.fail = True
    state = await resolver.resolve(ALICE)
    assert state.resolved
    assert state.role is None


@pytest.mark.asyncio
async def test_blocked_account_is_signed_out_once_and_never_published_as_authenticated(
    resolver: SessionResolver, directory: FakeDirectory, identity: FakeIdentity
) -> None:
    directory.put(ALICE, Role.caretaker, AccountStatus.blocked)
    seen: list[SessionState] = []
    resolver.subscribe(seen.append)

    state = await resolver.resolve(ALICE)
    assert state == SessionState.signed_out(evicted=True)
    assert identity.sign_outs == [ALICE]

    # A repeated notification for the same detection does not sign out again.
    await resolver.resolve(ALICE)
    assert identity.sign_outs == [ALICE]

    assert not any(s.is_authenticated and s.status is AccountStatus.blocked for s in seen)
    assert not any(s.resolved and s.principal is not None for s in seen)


@pytest.mark.asyncio
async def test_new_notification_supersedes_stale_lookup(
    resolver: SessionResolver, directory: FakeDirectory
) -> None:
    directory.put(ALICE, Role.caretaker, AccountStatus.active)
    directory.put(BOB, Role.nri, AccountStatus.active)
    gate = asyncio.Event()
    directory.gates[ALICE.subject] = gate

    first = resolver.notify(ALICE)
    await asyncio.sleep(0)
    second = resolver.notify(BOB)
    await second
    assert resolver.state.principal == BOB

    # Alice's lookup finishes late and must not overwrite Bob's session.
    gate.set()
    await first
    state = await resolver.settle()
    assert state.principal == BOB
    assert state.role is Role.nri


@pytest.mark.asyncio
async def test_bound_resolver_follows_identity_changes(
    resolver: SessionResolver, directory: FakeDirectory, identity: FakeIdentity
) -> None:
    directory.put(ALICE, Role.nri, AccountStatus.active)
    resolver.bind()
    assert (await resolver.settle()).principal is None

    identity.set_current(ALICE)
    assert (await resolver.settle()).role is Role.nri

    identity.set_current(None)
    assert (await resolver.settle()) == SessionState.signed_out()
    resolver.close()


@pytest.mark.asyncio
async def test_admin_block_evicts_open_session_and_guard_redirects(
    resolver: SessionResolver, directory: FakeDirectory, identity: FakeIdentity
) -> None:
    directory.put(ALICE, Role.caretaker, AccountStatus.active)
    resolver.bind()
    identity.set_current(ALICE)
    await resolver.settle()

    decisions = []
    guard = AccessGuard(
        sessions=resolver,
        identity=identity,
        required_role=Role.caretaker,
        on_decision=decisions.append,
    )
    assert (await guard.start()).intent is GuardIntent.render

    # Admin blocks the caretaker; the next resolution cycle evicts the session.
    directory.put(ALICE, Role.caretaker, AccountStatus.blocked)
    resolver.notify(ALICE)
    await resolver.settle()

    assert identity.sign_outs == [ALICE]
    assert resolver.state.evicted
    assert guard.decision.intent is GuardIntent.redirect_blocked
    assert guard.decision.target == "/login?blocked=true"
    assert GuardIntent.render not in [d.intent for d in decisions[1:]]
    guard.stop()
    resolver.close()
