"""
route_care.api.schemas

Request/response models shared by the routers.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from route_care.session.guard import GuardDecision
from route_care.session.state import SessionState
from route_care.workflow.states import RequestStatus


class _OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ServiceRequestOut(_OrmModel):
    id: str
    service_id: str | None
    service_name: str
    caretaker_id: str
    nri_id: str
    status: RequestStatus
    message: str
    remarks: str
    proof: str
    reviewed: bool
    created_at: datetime | None
    updated_at: datetime | None
    completed_at: datetime | None


class ReviewOut(_OrmModel):
    id: str
    service_request_id: str
    caretaker_id: str
    nri_id: str
    service_name: str
    rating: int
    comment: str
    created_at: datetime | None


class CareServiceOut(_OrmModel):
    id: str
    caretaker_id: str
    name: str
    description: str
    price: float | None
    is_active: bool


class ProfileOut(_OrmModel):
    subject: str
    display_name: str
    phone: str
    address: str
    caretaker_code: str | None


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, max_length=256)
    phone: str | None = Field(default=None, max_length=64)
    address: str | None = None


class DecisionOut(BaseModel):
    intent: str
    redirect_to: str | None

    @classmethod
    def of(cls, decision: GuardDecision) -> DecisionOut:
        return cls(intent=decision.intent.value, redirect_to=decision.target)


class SessionOut(BaseModel):
    authenticated: bool
    resolved: bool
    subject: str | None
    email: str | None
    role: str | None
    status: str | None

    @classmethod
    def of(cls, state: SessionState) -> SessionOut:
        return cls(
            authenticated=state.is_authenticated,
            resolved=state.resolved,
            subject=state.subject,
            email=state.principal.email if state.principal is not None else None,
            role=state.role.value if state.role is not None else None,
            status=state.status.value if state.status is not None else None,
        )
