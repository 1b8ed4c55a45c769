"""
route_care.api.routers.admin

Admin consoles: platform dashboard, user directories, account standing, all requests.

Responsibilities:
- Gate every route behind the admin view guard.
- Block/unblock NRI and caretaker accounts; the affected user is evicted on their next
  session resolution. Admin accounts are out of reach.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from route_care.api.deps import db_session, directory_dep, lifecycle_dep, settings_dep
from route_care.api.schemas import ServiceRequestOut
from route_care.auth.deps import require_view
from route_care.auth.models import AccountStatus, Role
from route_care.observability.logging import get_logger
from route_care.services.accounts import AccountDirectory, AccountNotFoundError, AccountRecord
from route_care.services.dashboards import DashboardService
from route_care.session.state import SessionState
from route_care.settings import Settings
from route_care.workflow.engine import RequestLifecycleEngine
from route_care.workflow.states import RequestStatus

log = get_logger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

_admin = require_view(Role.admin)


class AccountOut(BaseModel):
    subject: str
    email: str
    role: Role
    status: AccountStatus
    display_name: str
    created_at: datetime | None

    @classmethod
    def of(cls, record: AccountRecord) -> AccountOut:
        return cls(
            subject=record.subject,
            email=record.email,
            role=record.role,
            status=record.status,
            display_name=record.display_name,
            created_at=record.created_at,
        )


class StatusIn(BaseModel):
    status: AccountStatus


class AdminDashboardOut(BaseModel):
    total_nris: int
    total_caretakers: int
    total_requests: int
    active_requests: int
    completed_requests: int
    recent_activity: list[ServiceRequestOut]


@router.get("/dashboard", response_model=AdminDashboardOut)
async def dashboard(
    _: SessionState = Depends(_admin),
    db: AsyncSession = Depends(db_session),
    directory: AccountDirectory = Depends(directory_dep),
    settings: Settings = Depends(settings_dep),
) -> AdminDashboardOut:
    board = await DashboardService(session=db, directory=directory, settings=settings).admin()
    return AdminDashboardOut(
        total_nris=board.total_nris,
        total_caretakers=board.total_caretakers,
        total_requests=board.total_requests,
        active_requests=board.active_requests,
        completed_requests=board.completed_requests,
        recent_activity=[ServiceRequestOut.model_validate(r) for r in board.recent_activity],
    )


@router.get("/nris", response_model=list[AccountOut])
async def list_nris(
    search: str | None = Query(default=None, max_length=320),
    _: SessionState = Depends(_admin),
    directory: AccountDirectory = Depends(directory_dep),
) -> list[AccountOut]:
    return [AccountOut.of(r) for r in await directory.list_accounts(Role.nri, search=search)]


@router.get("/caretakers", response_model=list[AccountOut])
async def list_caretakers(
    search: str | None = Query(default=None, max_length=320),
    _: SessionState = Depends(_admin),
    directory: AccountDirectory = Depends(directory_dep),
) -> list[AccountOut]:
    records = await directory.list_accounts(Role.caretaker, search=search)
    return [AccountOut.of(r) for r in records]


async def _managed_account(directory: AccountDirectory, subject: str) -> AccountRecord:
    # Only NRI and caretaker standing is managed here; admins are reported as missing.
    record = await directory.get_account(subject)
    if record is None or record.role is Role.admin:
        raise AccountNotFoundError(subject)
    return record


@router.put("/accounts/{subject}/status", response_model=AccountOut)
async def set_account_status(
    subject: str,
    body: StatusIn,
    session: SessionState = Depends(_admin),
    directory: AccountDirectory = Depends(directory_dep),
) -> AccountOut:
    await _managed_account(directory, subject)
    record = await directory.set_status(subject, body.status)
    log.info("account_status_set", subject=subject, status=record.status, by=session.subject)
    return AccountOut.of(record)


@router.post("/accounts/{subject}/toggle-status", response_model=AccountOut)
async def toggle_account_status(
    subject: str,
    session: SessionState = Depends(_admin),
    directory: AccountDirectory = Depends(directory_dep),
) -> AccountOut:
    current = await _managed_account(directory, subject)
    target = AccountStatus.active if current.is_blocked else AccountStatus.blocked
    record = await directory.set_status(subject, target)
    log.info("account_status_set", subject=subject, status=record.status, by=session.subject)
    return AccountOut.of(record)


@router.get("/requests", response_model=list[ServiceRequestOut])
async def list_requests(
    status: RequestStatus | None = Query(default=None),
    _: SessionState = Depends(_admin),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> list[ServiceRequestOut]:
    return [ServiceRequestOut.model_validate(r) for r in await engine.list_all(status=status)]
