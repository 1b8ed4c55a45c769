"""
route_care.services.catalog

Caretaker service catalogue.

Responsibilities:
- Let caretakers manage the services they offer (create, edit, delete, toggle active).
- Show NRIs the active services of caretakers they are connected to.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from route_care.db.models import CareService
from route_care.db.repositories.profiles import ConnectionRepo
from route_care.db.repositories.services import CareServiceRepo
from route_care.workflow.errors import ServiceNotFoundError


class ServiceValidationError(ValueError):
    pass


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ServiceValidationError("Service name is required")
    return name


class ServiceCatalog:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._services = CareServiceRepo(session)
        self._connections = ConnectionRepo(session)

    async def list_own(self, caretaker_id: str) -> list[CareService]:
        return await self._services.list_for_caretaker(caretaker_id)

    async def create(
        self,
        *,
        caretaker_id: str,
        name: str,
        description: str = "",
        price: float | None = None,
        is_active: bool = True,
    ) -> CareService:
        svc = await self._services.create(
            caretaker_id=caretaker_id,
            name=_clean_name(name),
            description=description.strip(),
            price=price,
            is_active=is_active,
        )
        await self._session.commit()
        return svc

    async def update(
        self,
        *,
        caretaker_id: str,
        service_id: str,
        name: str,
        description: str = "",
        price: float | None = None,
        is_active: bool = True,
    ) -> CareService:
        svc = await self._owned(caretaker_id, service_id)
        svc.name = _clean_name(name)
        svc.description = description.strip()
        svc.price = price
        svc.is_active = is_active
        await self._session.commit()
        return svc

    async def toggle_active(self, *, caretaker_id: str, service_id: str) -> CareService:
        svc = await self._owned(caretaker_id, service_id)
        svc.is_active = not svc.is_active
        await self._session.commit()
        return svc

    async def delete(self, *, caretaker_id: str, service_id: str) -> None:
        svc = await self._owned(caretaker_id, service_id)
        await self._services.delete(svc)
        await self._session.commit()

    async def active_for_nri(self, *, nri_id: str, caretaker_id: str) -> list[CareService]:
        if not await self._connections.exists(nri_id=nri_id, caretaker_id=caretaker_id):
            return []
        return await self._services.list_for_caretaker(caretaker_id, active_only=True)

    async def _owned(self, caretaker_id: str, service_id: str) -> CareService:
        svc = await self._services.get(service_id)
        # Someone else's service is reported exactly like a missing one.
        if svc is None or svc.caretaker_id != caretaker_id:
            raise ServiceNotFoundError(service_id)
        return svc
