from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from route_care.db.models import Review


class ReviewRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        service_request_id: str,
        caretaker_id: str,
        nri_id: str,
        service_name: str,
        rating: int,
        comment: str,
    ) -> Review:
        review = Review(
            service_request_id=service_request_id,
            caretaker_id=caretaker_id,
            nri_id=nri_id,
            service_name=service_name,
            rating=rating,
            comment=comment,
        )
        self._session.add(review)
        await self._session.flush()
        return review

    async def get_for_request(self, service_request_id: str) -> Review | None:
        stmt = select(Review).where(Review.service_request_id == service_request_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_for_caretaker(self, caretaker_id: str) -> list[Review]:
        stmt = select(Review).where(Review.caretaker_id == caretaker_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_nri(self, nri_id: str) -> list[Review]:
        stmt = select(Review).where(Review.nri_id == nri_id)
        return list((await self._session.execute(stmt)).scalars().all())
