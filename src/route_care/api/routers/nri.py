"""
route_care.api.routers.nri

NRI views: dashboard, profile, caretaker connections, service requests and reviews.

Responsibilities:
- Gate every route behind the NRI view guard.
- Delegate request creation and review submission to the lifecycle engine.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from route_care.api.deps import db_session, directory_dep, lifecycle_dep, settings_dep
from route_care.api.schemas import (
    CareServiceOut,
    ProfileOut,
    ProfileUpdate,
    ReviewOut,
    ServiceRequestOut,
)
from route_care.auth.deps import require_view
from route_care.auth.models import Role
from route_care.services.accounts import AccountDirectory
from route_care.services.catalog import ServiceCatalog
from route_care.services.dashboards import DashboardService
from route_care.services.profiles import ProfileService
from route_care.session.state import SessionState
from route_care.settings import Settings
from route_care.workflow.engine import RequestLifecycleEngine
from route_care.workflow.states import RequestStatus

router = APIRouter(prefix="/v1/nri", tags=["nri"])

_nri = require_view(Role.nri)


class ConnectIn(BaseModel):
    code: str = Field(min_length=1, max_length=32)


class CaretakerOut(BaseModel):
    caretaker_id: str
    caretaker_code: str | None
    display_name: str
    phone: str
    average_rating: float
    review_count: int


class RequestIn(BaseModel):
    service_id: str
    message: str = ""


class ReviewIn(BaseModel):
    # Strict: "5" or true are not ratings.
    rating: int = Field(strict=True)
    comment: str = ""


class NriDashboardOut(BaseModel):
    connected_caretakers: int
    active_requests: int
    completed_requests: int
    recent_requests: list[ServiceRequestOut]


@router.get("/dashboard", response_model=NriDashboardOut)
async def dashboard(
    session: SessionState = Depends(_nri),
    db: AsyncSession = Depends(db_session),
    directory: AccountDirectory = Depends(directory_dep),
    settings: Settings = Depends(settings_dep),
) -> NriDashboardOut:
    board = await DashboardService(session=db, directory=directory, settings=settings).nri(
        session.subject
    )
    return NriDashboardOut(
        connected_caretakers=board.connected_caretakers,
        active_requests=board.active_requests,
        completed_requests=board.completed_requests,
        recent_requests=[ServiceRequestOut.model_validate(r) for r in board.recent_requests],
    )


@router.get("/profile", response_model=ProfileOut)
async def get_profile(
    session: SessionState = Depends(_nri),
    db: AsyncSession = Depends(db_session),
) -> ProfileOut:
    return ProfileOut.model_validate(await ProfileService(db).get_profile(session.subject))


@router.patch("/profile", response_model=ProfileOut)
async def update_profile(
    body: ProfileUpdate,
    session: SessionState = Depends(_nri),
    db: AsyncSession = Depends(db_session),
) -> ProfileOut:
    profile = await ProfileService(db).update_profile(
        session.subject,
        display_name=body.display_name,
        phone=body.phone,
        address=body.address,
    )
    return ProfileOut.model_validate(profile)


@router.get("/caretakers", response_model=list[CaretakerOut])
async def list_caretakers(
    session: SessionState = Depends(_nri),
    db: AsyncSession = Depends(db_session),
) -> list[CaretakerOut]:
    summaries = await ProfileService(db).connected_caretakers(session.subject)
    return [CaretakerOut.model_validate(s, from_attributes=True) for s in summaries]


@router.post("/caretakers/connect", response_model=ProfileOut, status_code=HTTP_201_CREATED)
async def connect_caretaker(
    body: ConnectIn,
    session: SessionState = Depends(_nri),
    db: AsyncSession = Depends(db_session),
) -> ProfileOut:
    caretaker = await ProfileService(db).connect_caretaker(nri_id=session.subject, code=body.code)
    return ProfileOut.model_validate(caretaker)


@router.get("/caretakers/{caretaker_id}/services", response_model=list[CareServiceOut])
async def list_caretaker_services(
    caretaker_id: str,
    session: SessionState = Depends(_nri),
    db: AsyncSession = Depends(db_session),
) -> list[CareServiceOut]:
    services = await ServiceCatalog(db).active_for_nri(
        nri_id=session.subject, caretaker_id=caretaker_id
    )
    return [CareServiceOut.model_validate(s) for s in services]


@router.post("/requests", response_model=ServiceRequestOut, status_code=HTTP_201_CREATED)
async def create_request(
    body: RequestIn,
    session: SessionState = Depends(_nri),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> ServiceRequestOut:
    req = await engine.create_request(
        nri_id=session.subject, service_id=body.service_id, message=body.message
    )
    return ServiceRequestOut.model_validate(req)


@router.get("/requests", response_model=list[ServiceRequestOut])
async def list_requests(
    status: RequestStatus | None = Query(default=None),
    session: SessionState = Depends(_nri),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> list[ServiceRequestOut]:
    rows = await engine.list_for_nri(session.subject, status=status)
    return [ServiceRequestOut.model_validate(r) for r in rows]


@router.post(
    "/requests/{request_id}/review", response_model=ReviewOut, status_code=HTTP_201_CREATED
)
async def submit_review(
    request_id: str,
    body: ReviewIn,
    session: SessionState = Depends(_nri),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> ReviewOut:
    review = await engine.submit_review(
        nri_id=session.subject, request_id=request_id, rating=body.rating, comment=body.comment
    )
    return ReviewOut.model_validate(review)


@router.get("/reviews/pending", response_model=list[ServiceRequestOut])
async def pending_reviews(
    session: SessionState = Depends(_nri),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> list[ServiceRequestOut]:
    rows = await engine.pending_reviews(session.subject)
    return [ServiceRequestOut.model_validate(r) for r in rows]


@router.get("/reviews", response_model=list[ReviewOut])
async def list_reviews(
    session: SessionState = Depends(_nri),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> list[ReviewOut]:
    rows = await engine.reviews_by_nri(session.subject)
    return [ReviewOut.model_validate(r) for r in rows]
