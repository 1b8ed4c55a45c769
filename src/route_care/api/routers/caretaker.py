"""
route_care.api.routers.caretaker

Caretaker views: dashboard, profile, service catalogue, incoming requests and reviews.

Responsibilities:
- Gate every route behind the caretaker view guard.
- Delegate catalogue edits to `ServiceCatalog` and status changes to the lifecycle engine.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

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

router = APIRouter(prefix="/v1/caretaker", tags=["caretaker"])

_caretaker = require_view(Role.caretaker)


class ServiceIn(BaseModel):
    name: str = Field(max_length=256)
    description: str = ""
    price: float | None = Field(default=None, ge=0)
    is_active: bool = True


class StatusUpdateIn(BaseModel):
    status: RequestStatus
    remarks: str = ""
    proof: str = ""


class CaretakerDashboardOut(BaseModel):
    active_services: int
    pending_requests: int
    connected_nris: int
    recent_requests: list[ServiceRequestOut]


class CaretakerProfileOut(BaseModel):
    profile: ProfileOut
    average_rating: float
    reviews: list[ReviewOut]


@router.get("/dashboard", response_model=CaretakerDashboardOut)
async def dashboard(
    session: SessionState = Depends(_caretaker),
    db: AsyncSession = Depends(db_session),
    directory: AccountDirectory = Depends(directory_dep),
    settings: Settings = Depends(settings_dep),
) -> CaretakerDashboardOut:
    board = await DashboardService(session=db, directory=directory, settings=settings).caretaker(
        session.subject
    )
    return CaretakerDashboardOut(
        active_services=board.active_services,
        pending_requests=board.pending_requests,
        connected_nris=board.connected_nris,
        recent_requests=[ServiceRequestOut.model_validate(r) for r in board.recent_requests],
    )


@router.get("/profile", response_model=CaretakerProfileOut)
async def get_profile(
    session: SessionState = Depends(_caretaker),
    db: AsyncSession = Depends(db_session),
) -> CaretakerProfileOut:
    overview = await ProfileService(db).caretaker_overview(session.subject)
    return CaretakerProfileOut(
        profile=ProfileOut.model_validate(overview.profile),
        average_rating=overview.average_rating,
        reviews=[ReviewOut.model_validate(r) for r in overview.reviews],
    )


@router.patch("/profile", response_model=ProfileOut)
async def update_profile(
    body: ProfileUpdate,
    session: SessionState = Depends(_caretaker),
    db: AsyncSession = Depends(db_session),
) -> ProfileOut:
    profile = await ProfileService(db).update_profile(
        session.subject,
        display_name=body.display_name,
        phone=body.phone,
        address=body.address,
    )
    return ProfileOut.model_validate(profile)


@router.get("/services", response_model=list[CareServiceOut])
async def list_services(
    session: SessionState = Depends(_caretaker),
    db: AsyncSession = Depends(db_session),
) -> list[CareServiceOut]:
    services = await ServiceCatalog(db).list_own(session.subject)
    return [CareServiceOut.model_validate(s) for s in services]


@router.post("/services", response_model=CareServiceOut, status_code=HTTP_201_CREATED)
async def create_service(
    body: ServiceIn,
    session: SessionState = Depends(_caretaker),
    db: AsyncSession = Depends(db_session),
) -> CareServiceOut:
    svc = await ServiceCatalog(db).create(caretaker_id=session.subject, **body.model_dump())
    return CareServiceOut.model_validate(svc)


@router.put("/services/{service_id}", response_model=CareServiceOut)
async def update_service(
    service_id: str,
    body: ServiceIn,
    session: SessionState = Depends(_caretaker),
    db: AsyncSession = Depends(db_session),
) -> CareServiceOut:
    svc = await ServiceCatalog(db).update(
        caretaker_id=session.subject, service_id=service_id, **body.model_dump()
    )
    return CareServiceOut.model_validate(svc)


@router.post("/services/{service_id}/toggle", response_model=CareServiceOut)
async def toggle_service(
    service_id: str,
    session: SessionState = Depends(_caretaker),
    db: AsyncSession = Depends(db_session),
) -> CareServiceOut:
    svc = await ServiceCatalog(db).toggle_active(
        caretaker_id=session.subject, service_id=service_id
    )
    return CareServiceOut.model_validate(svc)


@router.delete("/services/{service_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: str,
    session: SessionState = Depends(_caretaker),
    db: AsyncSession = Depends(db_session),
) -> None:
    await ServiceCatalog(db).delete(caretaker_id=session.subject, service_id=service_id)


@router.get("/requests", response_model=list[ServiceRequestOut])
async def list_requests(
    status: RequestStatus | None = Query(default=None),
    session: SessionState = Depends(_caretaker),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> list[ServiceRequestOut]:
    rows = await engine.list_for_caretaker(session.subject, status=status)
    return [ServiceRequestOut.model_validate(r) for r in rows]


@router.post("/requests/{request_id}/status", response_model=ServiceRequestOut)
async def update_request_status(
    request_id: str,
    body: StatusUpdateIn,
    session: SessionState = Depends(_caretaker),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> ServiceRequestOut:
    req = await engine.update_status(
        caretaker_id=session.subject,
        request_id=request_id,
        status=body.status,
        remarks=body.remarks,
        proof=body.proof,
    )
    return ServiceRequestOut.model_validate(req)


@router.get("/reviews", response_model=list[ReviewOut])
async def list_reviews(
    session: SessionState = Depends(_caretaker),
    engine: RequestLifecycleEngine = Depends(lifecycle_dep),
) -> list[ReviewOut]:
    rows = await engine.reviews_for_caretaker(session.subject)
    return [ReviewOut.model_validate(r) for r in rows]
