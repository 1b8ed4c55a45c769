from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from route_care.db.models import CareService


class CareServiceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        caretaker_id: str,
        name: str,
        description: str,
        price: float | None,
        is_active: bool,
    ) -> CareService:
        svc = CareService(
            caretaker_id=caretaker_id,
            name=name,
            description=description,
            price=price,
            is_active=is_active,
        )
        self._session.add(svc)
        await self._session.flush()
        return svc

    async def get(self, service_id: str) -> CareService | None:
        return await self._session.get(CareService, service_id)

    async def list_for_caretaker(
        self, caretaker_id: str, *, active_only: bool = False
    ) -> list[CareService]:
        stmt = select(CareService).where(CareService.caretaker_id == caretaker_id)
        if active_only:
            stmt = stmt.where(CareService.is_active.is_(True))
        stmt = stmt.order_by(CareService.created_at.desc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_active(self, caretaker_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(CareService)
            .where(CareService.caretaker_id == caretaker_id, CareService.is_active.is_(True))
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def delete(self, svc: CareService) -> None:
        await self._session.delete(svc)
        await self._session.flush()
