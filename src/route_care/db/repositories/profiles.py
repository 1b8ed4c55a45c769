from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from route_care.db.models import Connection, Profile


class ProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, subject: str, caretaker_code: str | None = None) -> Profile:
        profile = Profile(subject=subject, caretaker_code=caretaker_code)
        self._session.add(profile)
        await self._session.flush()
        return profile

    async def get(self, subject: str) -> Profile | None:
        return await self._session.get(Profile, subject)

    async def get_many(self, subjects: list[str]) -> dict[str, Profile]:
        if not subjects:
            return {}
        stmt = select(Profile).where(Profile.subject.in_(subjects))
        return {p.subject: p for p in (await self._session.execute(stmt)).scalars().all()}

    async def get_by_caretaker_code(self, code: str) -> Profile | None:
        stmt = select(Profile).where(Profile.caretaker_code == code)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def code_exists(self, code: str) -> bool:
        return await self.get_by_caretaker_code(code) is not None


class ConnectionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, *, nri_id: str, caretaker_id: str) -> Connection:
        conn = Connection(nri_id=nri_id, caretaker_id=caretaker_id)
        self._session.add(conn)
        await self._session.flush()
        return conn

    async def exists(self, *, nri_id: str, caretaker_id: str) -> bool:
        stmt = select(Connection.id).where(
            Connection.nri_id == nri_id, Connection.caretaker_id == caretaker_id
        )
        return (await self._session.execute(stmt)).first() is not None

    async def caretakers_for(self, nri_id: str) -> list[str]:
        stmt = (
            select(Connection.caretaker_id)
            .where(Connection.nri_id == nri_id)
            .order_by(Connection.created_at)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_nris_for(self, caretaker_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(Connection)
            .where(Connection.caretaker_id == caretaker_id)
        )
        return int((await self._session.execute(stmt)).scalar_one())
