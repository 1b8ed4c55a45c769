"""
route_care.services.dashboards

Per-role dashboard summaries.

Responsibilities:
- Caretaker: active services, pending requests, connected NRIs, recent requests.
- NRI: connected caretakers, active and completed requests, recent requests.
- Admin: user totals by role, request totals, recent activity across the platform.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from route_care.auth.models import Role
from route_care.db.models import ServiceRequest
from route_care.db.repositories.profiles import ConnectionRepo
from route_care.db.repositories.services import CareServiceRepo
from route_care.services.accounts import AccountDirectory
from route_care.settings import Settings
from route_care.workflow.engine import RequestLifecycleEngine
from route_care.workflow.views import count_requests, recent


@dataclass(frozen=True, slots=True)
class CaretakerDashboard:
    active_services: int
    pending_requests: int
    connected_nris: int
    recent_requests: list[ServiceRequest]


@dataclass(frozen=True, slots=True)
class NriDashboard:
    connected_caretakers: int
    active_requests: int
    completed_requests: int
    recent_requests: list[ServiceRequest]


@dataclass(frozen=True, slots=True)
class AdminDashboard:
    total_nris: int
    total_caretakers: int
    total_requests: int
    active_requests: int
    completed_requests: int
    recent_activity: list[ServiceRequest]


class DashboardService:
    def __init__(
        self, *, session: AsyncSession, directory: AccountDirectory, settings: Settings
    ) -> None:
        self._directory = directory
        self._settings = settings
        self._engine = RequestLifecycleEngine(
            session=session, max_proof_bytes=settings.max_proof_bytes
        )
        self._services = CareServiceRepo(session)
        self._connections = ConnectionRepo(session)

    async def caretaker(self, caretaker_id: str) -> CaretakerDashboard:
        requests = await self._engine.list_for_caretaker(caretaker_id)
        counts = count_requests(requests)
        return CaretakerDashboard(
            active_services=await self._services.count_active(caretaker_id),
            pending_requests=counts.pending,
            connected_nris=await self._connections.count_nris_for(caretaker_id),
            recent_requests=recent(requests, self._settings.dashboard_recent_limit),
        )

    async def nri(self, nri_id: str) -> NriDashboard:
        requests = await self._engine.list_for_nri(nri_id)
        counts = count_requests(requests)
        caretakers = await self._connections.caretakers_for(nri_id)
        return NriDashboard(
            connected_caretakers=len(caretakers),
            active_requests=counts.active,
            completed_requests=counts.completed,
            recent_requests=recent(requests, self._settings.dashboard_recent_limit),
        )

    async def admin(self) -> AdminDashboard:
        requests = await self._engine.list_all()
        counts = count_requests(requests)
        return AdminDashboard(
            total_nris=await self._directory.count_by_role(Role.nri),
            total_caretakers=await self._directory.count_by_role(Role.caretaker),
            total_requests=counts.total,
            active_requests=counts.active,
            completed_requests=counts.completed,
            recent_activity=recent(requests, self._settings.admin_recent_limit),
        )
