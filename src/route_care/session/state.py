"""
route_care.session.state

The resolved, in-memory view of a principal's role and standing.
"""

from __future__ import annotations

from dataclasses import dataclass

from route_care.auth.models import AccountStatus, Principal, Role


@dataclass(frozen=True, slots=True)
class SessionState:
    principal: Principal | None = None
    role: Role | None = None
    status: AccountStatus | None = None
    resolved: bool = False
    # Set when the resolver signed the principal out because the account is blocked.
    evicted: bool = False

    @classmethod
    def loading(cls, principal: Principal | None = None) -> SessionState:
        return cls(principal=principal, resolved=False)

    @classmethod
    def signed_out(cls, *, evicted: bool = False) -> SessionState:
        return cls(resolved=True, evicted=evicted)

    @property
    def is_authenticated(self) -> bool:
        return self.resolved and self.principal is not None

    @property
    def subject(self) -> str | None:
        return self.principal.subject if self.principal is not None else None
