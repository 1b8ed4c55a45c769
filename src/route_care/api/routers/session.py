"""
route_care.api.routers.session

Session introspection for clients that render their own views.

Responsibilities:
- Report the caller's resolved session (role, standing).
- Report the guard decision for a role-scoped view and the post-login landing target.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from route_care.api.deps import identity_dep
from route_care.api.schemas import DecisionOut, SessionOut
from route_care.auth.deps import get_session_state
from route_care.auth.models import Role
from route_care.identity.provider import LocalIdentityProvider
from route_care.session.guard import decide, landing_target
from route_care.session.state import SessionState

router = APIRouter(prefix="/v1/session", tags=["session"])


@router.get("", response_model=SessionOut)
async def get_session(session: SessionState = Depends(get_session_state)) -> SessionOut:
    return SessionOut.of(session)


@router.get("/guard", response_model=DecisionOut)
async def guard_decision(
    required_role: Role | None = Query(default=None),
    session: SessionState = Depends(get_session_state),
    identity: LocalIdentityProvider = Depends(identity_dep),
) -> DecisionOut:
    # Unlike `require_view`, refusals are returned as data rather than error responses.
    decision = decide(session, required_role)
    if decision.sign_out and session.principal is not None:
        await identity.sign_out(session.principal)
    return DecisionOut.of(decision)


@router.get("/landing", response_model=DecisionOut)
async def landing(session: SessionState = Depends(get_session_state)) -> DecisionOut:
    return DecisionOut.of(landing_target(session))
