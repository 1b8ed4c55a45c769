"""
route_care.services.profiles

Profiles, caretaker codes and NRI <-> caretaker connections.

Responsibilities:
- Create a profile per account (caretakers get a unique `CT-XXXXXXXX` code).
- Let NRIs connect to a caretaker by code and list connected caretakers with ratings.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from route_care.auth.models import Role
from route_care.db.models import Profile, Review
from route_care.db.repositories.profiles import ConnectionRepo, ProfileRepo
from route_care.db.repositories.reviews import ReviewRepo
from route_care.observability.logging import get_logger
from route_care.workflow.views import average_rating, newest_first

log = get_logger(__name__)

CODE_PREFIX = "CT-"
_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_LENGTH = 8
_CODE_ATTEMPTS = 5


class ProfileNotFoundError(LookupError):
    pass


class CaretakerNotFoundError(LookupError):
    def __init__(self, code: str) -> None:
        super().__init__("Caretaker not found. Please check the ID.")
        self.code = code


class AlreadyConnectedError(ValueError):
    def __init__(self) -> None:
        super().__init__("This caretaker is already connected.")


def generate_caretaker_code() -> str:
    return CODE_PREFIX + "".join(secrets.choice(_CODE_ALPHABET) for _ in range(_CODE_LENGTH))


def normalize_code(code: str) -> str:
    return code.strip().upper()


@dataclass(frozen=True, slots=True)
class CaretakerSummary:
    caretaker_id: str
    caretaker_code: str | None
    display_name: str
    phone: str
    average_rating: float
    review_count: int


@dataclass(frozen=True, slots=True)
class CaretakerOverview:
    profile: Profile
    average_rating: float
    reviews: list[Review]


class ProfileService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._profiles = ProfileRepo(session)
        self._connections = ConnectionRepo(session)
        self._reviews = ReviewRepo(session)

    async def create_profile(self, subject: str, role: Role) -> Profile:
        code = None
        if role is Role.caretaker:
            code = await self._unused_code()
        profile = await self._profiles.create(subject=subject, caretaker_code=code)
        await self._session.commit()
        return profile

    async def get_profile(self, subject: str) -> Profile:
        profile = await self._profiles.get(subject)
        if profile is None:
            raise ProfileNotFoundError(subject)
        return profile

    async def update_profile(
        self,
        subject: str,
        *,
        display_name: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> Profile:
        profile = await self.get_profile(subject)
        if display_name is not None:
            profile.display_name = display_name.strip()
        if phone is not None:
            profile.phone = phone.strip()
        if address is not None:
            profile.address = address.strip()
        await self._session.commit()
        return profile

    async def connect_caretaker(self, *, nri_id: str, code: str) -> Profile:
        caretaker = await self._profiles.get_by_caretaker_code(normalize_code(code))
        if caretaker is None:
            raise CaretakerNotFoundError(code)
        if await self._connections.exists(nri_id=nri_id, caretaker_id=caretaker.subject):
            raise AlreadyConnectedError()
        await self._connections.add(nri_id=nri_id, caretaker_id=caretaker.subject)
        await self._session.commit()
        log.info("caretaker_connected", nri_id=nri_id, caretaker_id=caretaker.subject)
        return caretaker

    async def is_connected(self, *, nri_id: str, caretaker_id: str) -> bool:
        return await self._connections.exists(nri_id=nri_id, caretaker_id=caretaker_id)

    async def connected_caretakers(self, nri_id: str) -> list[CaretakerSummary]:
        ids = await self._connections.caretakers_for(nri_id)
        profiles = await self._profiles.get_many(ids)
        out: list[CaretakerSummary] = []
        for caretaker_id in ids:
            profile = profiles.get(caretaker_id)
            reviews = await self._reviews.list_for_caretaker(caretaker_id)
            out.append(
                CaretakerSummary(
                    caretaker_id=caretaker_id,
                    caretaker_code=profile.caretaker_code if profile else None,
                    display_name=profile.display_name if profile else "",
                    phone=profile.phone if profile else "",
                    average_rating=average_rating(reviews),
                    review_count=len(reviews),
                )
            )
        return out

    async def caretaker_overview(self, caretaker_id: str) -> CaretakerOverview:
        profile = await self.get_profile(caretaker_id)
        reviews = await self._reviews.list_for_caretaker(caretaker_id)
        return CaretakerOverview(
            profile=profile,
            average_rating=average_rating(reviews),
            reviews=newest_first(reviews),
        )

    async def count_connected_nris(self, caretaker_id: str) -> int:
        return await self._connections.count_nris_for(caretaker_id)

    async def _unused_code(self) -> str:
        for _ in range(_CODE_ATTEMPTS):
            code = generate_caretaker_code()
            if not await self._profiles.code_exists(code):
                return code
        # 36**8 codes; repeated collisions mean something else is wrong.
        raise RuntimeError("could not allocate a unique caretaker code")
