"""
route_care.auth.deps

FastAPI dependency functions for authentication and role-scoped views.

Responsibilities:
- Convert a bearer token into a typed `Principal` (or none).
- Resolve the caller's session (role + standing) once per request.
- Enforce the access guard via a reusable dependency factory (`require_view`).
"""

from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED

from route_care.api.deps import directory_dep, identity_dep
from route_care.auth.models import Principal, Role
from route_care.identity.provider import LocalIdentityProvider
from route_care.services.accounts import AccountDirectory
from route_care.session.guard import GuardDecision, GuardIntent, decide
from route_care.session.resolver import SessionResolver
from route_care.session.state import SessionState

_bearer = HTTPBearer(auto_error=False)


class GuardRedirect(Exception):
    """The guard refused to render; the handler turns the decision into a response."""

    def __init__(self, decision: GuardDecision) -> None:
        super().__init__(decision.intent.value)
        self.decision = decision


async def optional_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: LocalIdentityProvider = Depends(identity_dep),
) -> Principal | None:
    if creds is None or not creds.credentials:
        return None
    # Bad signature, expired, or signed out since issue: all read as "no principal".
    return await identity.verify(creds.credentials)


async def get_principal(principal: Principal | None = Depends(optional_principal)) -> Principal:
    if principal is None:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Not signed in")
    return principal


async def get_session_state(
    principal: Principal | None = Depends(optional_principal),
    identity: LocalIdentityProvider = Depends(identity_dep),
    directory: AccountDirectory = Depends(directory_dep),
) -> SessionState:
    resolver = SessionResolver(directory=directory, identity=identity)
    return await resolver.resolve(principal)


def require_view(role: Role | None = None):
    async def _dep(
        session: SessionState = Depends(get_session_state),
        identity: LocalIdentityProvider = Depends(identity_dep),
    ) -> SessionState:
        decision = decide(session, role)
        if decision.sign_out and session.principal is not None:
            await identity.sign_out(session.principal)
        if decision.intent is not GuardIntent.render:
            raise GuardRedirect(decision)
        return session

    return _dep


# --- Module Notes -----------------------------------------------------------
# A blocked caller is signed out by the resolver before the guard runs, so the
# guard sees a signed-out, evicted session and answers with the blocked redirect.
