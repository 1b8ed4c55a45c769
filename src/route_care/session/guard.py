"""
route_care.session.guard

Access guard for role-scoped views.

Responsibilities:
- `decide()`: pure decision table from (session, required role) to a navigation intent.
- `landing_target()`: where a freshly signed-in user should be sent.
- `AccessGuard`: re-evaluate the decision on every published session state, performing
  the blocked-account sign-out before reporting the redirect.

The surrounding shell (HTTP layer, client router) performs the actual navigation.
"""

from __future__ import annotations

import enum
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from route_care.auth.models import AccountStatus, Principal, Role
from route_care.observability.logging import get_logger
from route_care.session.state import SessionState

log = get_logger(__name__)

LOGIN_PATH = "/login"
BLOCKED_LOGIN_PATH = "/login?blocked=true"


class GuardIntent(enum.StrEnum):
    loading = "loading"
    render = "render"
    redirect_login = "redirect-login"
    redirect_blocked = "redirect-blocked"
    redirect_dashboard = "redirect-dashboard"


@dataclass(frozen=True, slots=True)
class GuardDecision:
    intent: GuardIntent
    target: str | None = None
    # The shell must sign the principal out before navigating.
    sign_out: bool = False

    @property
    def is_redirect(self) -> bool:
        return self.target is not None


LOADING = GuardDecision(GuardIntent.loading)
RENDER = GuardDecision(GuardIntent.render)
TO_LOGIN = GuardDecision(GuardIntent.redirect_login, LOGIN_PATH)


def decide(session: SessionState, required_role: Role | None = None) -> GuardDecision:
    # Evaluated in order; first match wins.
    if not session.resolved:
        return LOADING

    if session.principal is None:
        if session.evicted:
            return GuardDecision(GuardIntent.redirect_blocked, BLOCKED_LOGIN_PATH)
        return TO_LOGIN

    if session.status == AccountStatus.blocked:
        return GuardDecision(GuardIntent.redirect_blocked, BLOCKED_LOGIN_PATH, sign_out=True)

    if required_role is not None and session.role != required_role:
        role = Role.parse(session.role)
        if role is None:
            return TO_LOGIN
        return GuardDecision(GuardIntent.redirect_dashboard, role.dashboard_path)

    return RENDER


def landing_target(session: SessionState) -> GuardDecision:
    """Post-login redirect: own dashboard once the role is known."""
    if not session.resolved:
        return LOADING
    if session.principal is None:
        return decide(session)
    if session.status == AccountStatus.blocked:
        return decide(session)
    role = Role.parse(session.role)
    if role is None:
        # New sign-up whose account record is not readable yet.
        return LOADING
    return GuardDecision(GuardIntent.redirect_dashboard, role.dashboard_path)


class _SessionSource(Protocol):
    @property
    def state(self) -> SessionState: ...

    def subscribe(
        self, listener: Callable[[SessionState], Awaitable[None] | None]
    ) -> Callable[[], None]: ...


class _SignOut(Protocol):
    async def sign_out(self, principal: Principal) -> None: ...


DecisionListener = Callable[[GuardDecision], Awaitable[None] | None]


class AccessGuard:
    """
    Guards one view. Decisions are recomputed on every session change (role, status or
    principal), not only when the view is first mounted.
    """

    def __init__(
        self,
        *,
        sessions: _SessionSource,
        identity: _SignOut,
        required_role: Role | None,
        on_decision: DecisionListener,
    ) -> None:
        self._sessions = sessions
        self._identity = identity
        self._required_role = required_role
        self._on_decision = on_decision
        self._unsubscribe: Callable[[], None] | None = None
        self.decision: GuardDecision = LOADING

    async def start(self) -> GuardDecision:
        self._unsubscribe = self._sessions.subscribe(self.evaluate)
        return await self.evaluate(self._sessions.state)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def evaluate(self, session: SessionState) -> GuardDecision:
        decision = decide(session, self._required_role)
        if decision.sign_out and session.principal is not None:
            # Sign-out must finish before the redirect leaves the blocked view.
            await self._identity.sign_out(session.principal)
        if decision != self.decision:
            log.debug(
                "guard_decision",
                intent=decision.intent.value,
                target=decision.target,
                required_role=self._required_role,
            )
        self.decision = decision
        result = self._on_decision(decision)
        if inspect.isawaitable(result):
            await result
        return decision
