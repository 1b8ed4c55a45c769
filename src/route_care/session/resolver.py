"""
route_care.session.resolver

Session resolver: the single writer of session state.

Responsibilities:
- Turn "the identity provider says principal P is signed in" into `{principal, role, status}`
  by reading the account directory.
- Force sign-out of blocked accounts before anything observes them as authenticated.
- Apply only the newest notification; results of superseded resolutions are discarded.
- Absorb account-store failures (logged, resolved as "no role").

Notes:
- `resolve()` is the one-shot form used per HTTP request.
- `bind()` + `notify()` are the streaming form used by long-lived clients: every identity
  change schedules a resolution task and `settle()` waits for the newest one.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Protocol

from route_care.auth.models import Principal
from route_care.observability.logging import get_logger
from route_care.services.accounts import AccountRecord, AccountStoreError
from route_care.session.state import SessionState

log = get_logger(__name__)

SessionListener = Callable[[SessionState], Awaitable[None] | None]


class AccountLookup(Protocol):
    async def get_account(self, subject: str) -> AccountRecord | None: ...


class IdentitySessions(Protocol):
    async def sign_out(self, principal: Principal) -> None: ...

    def on_session_change(
        self, callback: Callable[[Principal | None], None]
    ) -> Callable[[], None]: ...


class SessionResolver:
    def __init__(self, *, directory: AccountLookup, identity: IdentitySessions) -> None:
        self._directory = directory
        self._identity = identity

        self._state = SessionState.loading()
        self._listeners: list[SessionListener] = []

        # Every notification gets a generation; only the newest may publish.
        self._generation = 0
        self._latest: Principal | None = None
        self._pending: asyncio.Task[SessionState] | None = None

        # Principal already signed out for being blocked (one sign-out per detection).
        self._evicted: Principal | None = None
        self._unbind: Callable[[], None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def bind(self) -> None:
        """Follow the identity provider's session changes. Needs a running event loop."""
        if self._unbind is None:
            self._unbind = self._identity.on_session_change(self.notify)

    def close(self) -> None:
        if self._unbind is not None:
            self._unbind()
            self._unbind = None

    def notify(self, principal: Principal | None) -> asyncio.Task[SessionState]:
        generation = self._advance(principal)
        task = asyncio.get_running_loop().create_task(self._resolve(principal, generation))
        task.add_done_callback(_log_task_failure)
        self._pending = task
        return task

    async def settle(self) -> SessionState:
        # The pending task may be replaced while we wait; keep going until the newest is done.
        while self._pending is not None and not self._pending.done():
            await asyncio.wait([self._pending])
        return self._state

    async def resolve(self, principal: Principal | None) -> SessionState:
        generation = self._advance(principal)
        return await self._resolve(principal, generation)

    def _advance(self, principal: Principal | None) -> int:
        self._generation += 1
        self._latest = principal
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _resolve(self, principal: Principal | None, generation: int) -> SessionState:
        if principal is None:
            # The provider's own notification after a forced sign-out keeps the indicator.
            evicted = self._state.evicted and self._state.principal is None
            return await self._publish_if_current(
                generation, SessionState.signed_out(evicted=evicted)
            )

        await self._publish_if_current(generation, SessionState.loading(principal))
        bound = log.bind(subject=principal.subject, generation=generation)

        try:
            account = await self._directory.get_account(principal.subject)
        except AccountStoreError as e:
            bound.warning("account_lookup_failed", error=str(e))
            return await self._publish_if_current(
                generation, SessionState(principal=principal, resolved=True)
            )

        if not self._is_current(generation):
            bound.debug("stale_resolution_discarded")
            return self._state

        if account is None:
            # Sign-up still in flight, or the account write is not visible yet.
            bound.info("account_missing")
            return await self._publish_if_current(
                generation, SessionState(principal=principal, resolved=True)
            )

        if account.is_blocked:
            return await self._evict(principal, generation)

        if self._evicted is not None and self._evicted.subject == principal.subject:
            self._evicted = None
        return await self._publish_if_current(
            generation,
            SessionState(
                principal=principal,
                role=account.role,
                status=account.status,
                resolved=True,
            ),
        )

    async def _evict(self, principal: Principal, generation: int) -> SessionState:
        if self._evicted != principal:
            self._evicted = principal
            log.info("blocked_session_evicted", subject=principal.subject)
            # Sign-out completes before the signed-out state is published.
            await self._identity.sign_out(principal)

        # The provider's own None notification may have advanced the generation; only a
        # newer *principal* outranks the eviction.
        if self._is_current(generation) or self._latest is None:
            await self._publish(SessionState.signed_out(evicted=True))
        return self._state

    async def _publish_if_current(self, generation: int, state: SessionState) -> SessionState:
        if self._is_current(generation):
            await self._publish(state)
        return self._state

    async def _publish(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            result = listener(state)
            if inspect.isawaitable(result):
                await result


def _log_task_failure(task: asyncio.Task[SessionState]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("session_resolution_failed", error=str(exc), exc_info=exc)


# --- Module Notes -----------------------------------------------------------
# "Authenticated and blocked" is never published: the blocked branch goes straight from
# the loading state to the signed-out state, and only after sign-out has completed.
