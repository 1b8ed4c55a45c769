from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from route_care.auth.models import AccountStatus, Role
from route_care.db.models import Account, Profile


class AccountRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        subject: str,
        email: str,
        role: Role,
        status: AccountStatus = AccountStatus.active,
    ) -> Account:
        acct = Account(subject=subject, email=email, role=role, status=status)
        self._session.add(acct)
        await self._session.flush()
        return acct

    async def get(self, subject: str) -> Account | None:
        return await self._session.get(Account, subject)

    async def set_status(self, subject: str, status: AccountStatus) -> Account | None:
        acct = await self._session.get(Account, subject)
        if acct is None:
            return None
        acct.status = status
        acct.updated_at = datetime.now(UTC).replace(tzinfo=None)
        await self._session.flush()
        return acct

    async def list_by_role(
        self, role: Role, *, search: str | None = None
    ) -> list[tuple[Account, Profile | None]]:
        stmt = (
            select(Account, Profile)
            .outerjoin(Profile, Profile.subject == Account.subject)
            .where(Account.role == role)
            .order_by(Account.created_at.desc())
        )
        if search:
            needle = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Account.email).like(needle),
                    func.lower(func.coalesce(Profile.display_name, "")).like(needle),
                )
            )
        rows = (await self._session.execute(stmt)).all()
        return [(acct, profile) for acct, profile in rows]

    async def count_by_role(self, role: Role) -> int:
        stmt = select(func.count()).select_from(Account).where(Account.role == role)
        return int((await self._session.execute(stmt)).scalar_one())
