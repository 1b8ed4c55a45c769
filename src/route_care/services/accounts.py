"""
route_care.services.accounts

Account directory: the per-principal role/status record.

Responsibilities:
- Create, read and update accounts in short-lived sessions of their own.
- Fill in defaults at the read boundary (a missing status reads as `active`).
- Translate store failures into `AccountStoreError` so callers can degrade.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from route_care.auth.models import AccountStatus, Role
from route_care.db.models import Account, Profile
from route_care.db.repositories.accounts import AccountRepo


class AccountStoreError(Exception):
    """The account store could not be reached or rejected the operation."""


class AccountNotFoundError(LookupError):
    pass


class AccountExistsError(ValueError):
    """Every principal has at most one account."""


@dataclass(frozen=True, slots=True)
class AccountRecord:
    subject: str
    email: str
    role: Role
    status: AccountStatus
    display_name: str = ""
    created_at: datetime | None = None

    @property
    def is_blocked(self) -> bool:
        return self.status is AccountStatus.blocked


def _to_record(acct: Account, profile: Profile | None = None) -> AccountRecord:
    return AccountRecord(
        subject=acct.subject,
        email=acct.email,
        role=Role(acct.role),
        status=AccountStatus(acct.status) if acct.status else AccountStatus.active,
        display_name=profile.display_name if profile is not None else "",
        created_at=acct.created_at,
    )


class AccountDirectory:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_account(
        self,
        subject: str,
        role: Role,
        *,
        email: str,
        status: AccountStatus = AccountStatus.active,
    ) -> AccountRecord:
        try:
            async with self._session_factory() as session:
                repo = AccountRepo(session)
                if await repo.get(subject) is not None:
                    raise AccountExistsError(subject)
                acct = await repo.create(subject=subject, email=email, role=role, status=status)
                await session.commit()
                return _to_record(acct)
        except SQLAlchemyError as e:
            raise AccountStoreError(str(e)) from e

    async def get_account(self, subject: str) -> AccountRecord | None:
        try:
            async with self._session_factory() as session:
                acct = await AccountRepo(session).get(subject)
        except SQLAlchemyError as e:
            raise AccountStoreError(str(e)) from e
        return _to_record(acct) if acct is not None else None

    async def set_status(self, subject: str, status: AccountStatus) -> AccountRecord:
        # Last write wins; re-applying the same status is harmless.
        try:
            async with self._session_factory() as session:
                acct = await AccountRepo(session).set_status(subject, status)
                if acct is None:
                    raise AccountNotFoundError(subject)
                await session.commit()
                return _to_record(acct)
        except SQLAlchemyError as e:
            raise AccountStoreError(str(e)) from e

    async def list_accounts(self, role: Role, *, search: str | None = None) -> list[AccountRecord]:
        try:
            async with self._session_factory() as session:
                rows = await AccountRepo(session).list_by_role(role, search=search)
        except SQLAlchemyError as e:
            raise AccountStoreError(str(e)) from e
        return [_to_record(acct, profile) for acct, profile in rows]

    async def count_by_role(self, role: Role) -> int:
        try:
            async with self._session_factory() as session:
                return await AccountRepo(session).count_by_role(role)
        except SQLAlchemyError as e:
            raise AccountStoreError(str(e)) from e
