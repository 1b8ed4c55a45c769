"""
route_care.db.repositories.service_requests

Repository for `ServiceRequest` entities.

Responsibilities:
- Create requests and fetch them by caretaker, NRI, or status.
- Apply planned status updates and the `reviewed` flag.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from route_care.db.models import ServiceRequest
from route_care.workflow.states import RequestStatus, StatusUpdate


class ServiceRequestRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        service_id: str,
        service_name: str,
        caretaker_id: str,
        nri_id: str,
        message: str,
    ) -> ServiceRequest:
        req = ServiceRequest(
            service_id=service_id,
            service_name=service_name,
            caretaker_id=caretaker_id,
            nri_id=nri_id,
            status=RequestStatus.pending,
            message=message,
            remarks="",
            proof="",
            reviewed=False,
            completed_at=None,
        )
        self._session.add(req)
        await self._session.flush()
        return req

    async def get(self, request_id: str) -> ServiceRequest | None:
        return await self._session.get(ServiceRequest, request_id)

    async def find(
        self,
        *,
        caretaker_id: str | None = None,
        nri_id: str | None = None,
        statuses: Iterable[RequestStatus] | None = None,
    ) -> list[ServiceRequest]:
        # Ordering is applied by workflow.views.newest_first (NULL timestamps last).
        stmt = select(ServiceRequest)
        if caretaker_id is not None:
            stmt = stmt.where(ServiceRequest.caretaker_id == caretaker_id)
        if nri_id is not None:
            stmt = stmt.where(ServiceRequest.nri_id == nri_id)
        if statuses is not None:
            stmt = stmt.where(ServiceRequest.status.in_(list(statuses)))
        return list((await self._session.execute(stmt)).scalars().all())

    async def apply_update(self, req: ServiceRequest, change: StatusUpdate) -> ServiceRequest:
        req.status = change.status
        req.remarks = change.remarks
        req.proof = change.proof
        req.updated_at = change.updated_at
        req.completed_at = change.completed_at
        await self._session.flush()
        return req

    async def mark_reviewed(self, request_id: str) -> None:
        stmt = (
            update(ServiceRequest)
            .where(ServiceRequest.id == request_id)
            .values(reviewed=True)
        )
        await self._session.execute(stmt)
