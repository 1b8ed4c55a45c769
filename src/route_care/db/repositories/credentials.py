"""
route_care.db.repositories.credentials

Repository for `Credential` entities (identity-provider records).
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from route_care.db.models import Credential


class CredentialRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, email: str, password_hash: str) -> Credential:
        cred = Credential(email=email, password_hash=password_hash, epoch=0)
        self._session.add(cred)
        await self._session.flush()
        return cred

    async def get(self, subject: str) -> Credential | None:
        return await self._session.get(Credential, subject)

    async def get_by_email(self, email: str) -> Credential | None:
        stmt = select(Credential).where(Credential.email == email)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def bump_epoch(self, subject: str) -> None:
        # Single UPDATE so two concurrent sign-outs both land.
        stmt = (
            update(Credential)
            .where(Credential.subject == subject)
            .values(epoch=Credential.epoch + 1)
        )
        await self._session.execute(stmt)
