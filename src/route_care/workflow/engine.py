"""
route_care.workflow.engine

Request lifecycle engine (transaction + persistence owner for service requests).

Responsibilities:
- Create requests on behalf of NRIs for active services of caretakers they are connected to.
- Apply caretaker status updates through the state machine in `workflow.states`.
- Accept exactly one review per completed request, guarding against duplicates even when
  the review write and the `reviewed` flag write are not one transaction.
- Serve request/review listings in "newest first" order.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from route_care.db.models import Review, ServiceRequest
from route_care.db.repositories.profiles import ConnectionRepo
from route_care.db.repositories.reviews import ReviewRepo
from route_care.db.repositories.service_requests import ServiceRequestRepo
from route_care.db.repositories.services import CareServiceRepo
from route_care.observability.logging import get_logger
from route_care.workflow.errors import (
    DuplicateReviewError,
    NotRequestOwnerError,
    RequestNotFoundError,
    ServiceNotFoundError,
    WorkflowStoreError,
    WorkflowValidationError,
)
from route_care.workflow.states import (
    RequestStatus,
    ensure_reviewable,
    plan_status_update,
    validate_rating,
)
from route_care.workflow.views import newest_first

log = get_logger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class RequestLifecycleEngine:
    def __init__(
        self,
        *,
        session: AsyncSession,
        max_proof_bytes: int = 500_000,
        clock: Clock = utcnow,
    ) -> None:
        self._session = session
        self._max_proof_bytes = max_proof_bytes
        self._clock = clock

        self._requests = ServiceRequestRepo(session)
        self._reviews = ReviewRepo(session)
        self._services = CareServiceRepo(session)
        self._connections = ConnectionRepo(session)

    async def create_request(
        self, *, nri_id: str, service_id: str, message: str = ""
    ) -> ServiceRequest:
        async with self._store():
            svc = await self._services.get(service_id)
            if svc is None or not svc.is_active:
                raise ServiceNotFoundError(service_id)
            # Services of caretakers the NRI has not connected to are not visible to them.
            if not await self._connections.exists(nri_id=nri_id, caretaker_id=svc.caretaker_id):
                raise ServiceNotFoundError(service_id)
            req = await self._requests.create(
                service_id=svc.id,
                service_name=svc.name,
                caretaker_id=svc.caretaker_id,
                nri_id=nri_id,
                message=message.strip(),
            )
            await self._session.commit()

        log.info(
            "request_created",
            request_id=req.id,
            caretaker_id=req.caretaker_id,
            nri_id=nri_id,
        )
        return req

    async def update_status(
        self,
        *,
        caretaker_id: str,
        request_id: str,
        status: RequestStatus,
        remarks: str = "",
        proof: str = "",
    ) -> ServiceRequest:
        if len(proof.encode()) > self._max_proof_bytes:
            raise WorkflowValidationError(
                f"Proof must be less than {self._max_proof_bytes // 1000}KB"
            )

        async with self._store():
            req = await self._get(request_id)
            if req.caretaker_id != caretaker_id:
                raise NotRequestOwnerError(request_id)

            previous = RequestStatus(req.status)
            change = plan_status_update(
                current=previous,
                current_completed_at=req.completed_at,
                target=RequestStatus(status),
                remarks=remarks,
                proof=proof,
                now=self._clock(),
            )
            await self._requests.apply_update(req, change)
            await self._session.commit()

        log.info(
            "request_status_updated",
            request_id=req.id,
            from_status=previous.value,
            to_status=change.status.value,
        )
        if previous is not RequestStatus.completed and change.status is RequestStatus.completed:
            log.info("request_completed", request_id=req.id, completed_at=str(change.completed_at))
        return req

    async def submit_review(
        self,
        *,
        nri_id: str,
        request_id: str,
        rating: int,
        comment: str = "",
    ) -> Review:
        rating = validate_rating(rating)

        async with self._store():
            req = await self._get(request_id)
            if req.nri_id != nri_id:
                raise NotRequestOwnerError(request_id)

            # The flag and the review are separate writes: trust the review, not the flag.
            existing = await self._reviews.get_for_request(req.id)
        if existing is not None:
            if not req.reviewed:
                log.warning("review_flag_reconciled", request_id=req.id)
                await self._mark_reviewed(req.id)
            raise DuplicateReviewError(req.id)
        if req.reviewed:
            raise DuplicateReviewError(req.id)
        ensure_reviewable(status=RequestStatus(req.status), reviewed=req.reviewed)

        caretaker_id = req.caretaker_id
        try:
            async with self._store():
                review = await self._reviews.create(
                    service_request_id=req.id,
                    caretaker_id=caretaker_id,
                    nri_id=nri_id,
                    service_name=req.service_name or "Service",
                    rating=rating,
                    comment=comment.strip(),
                )
                await self._session.commit()
        except WorkflowStoreError as e:
            # Unique index on service_request_id: a concurrent submission won.
            if isinstance(e.__cause__, IntegrityError):
                raise DuplicateReviewError(request_id) from e
            raise

        # Detach so a rollback in the flag write cannot expire the returned row.
        self._session.expunge(review)
        log.info("review_submitted", request_id=request_id, caretaker_id=caretaker_id, rating=rating)
        await self._mark_reviewed(request_id)
        return review

    async def list_for_caretaker(
        self, caretaker_id: str, *, status: RequestStatus | None = None
    ) -> list[ServiceRequest]:
        async with self._store():
            rows = await self._requests.find(
                caretaker_id=caretaker_id, statuses=_statuses(status)
            )
        return newest_first(rows)

    async def list_for_nri(
        self, nri_id: str, *, status: RequestStatus | None = None
    ) -> list[ServiceRequest]:
        async with self._store():
            rows = await self._requests.find(nri_id=nri_id, statuses=_statuses(status))
        return newest_first(rows)

    async def list_all(self, *, status: RequestStatus | None = None) -> list[ServiceRequest]:
        async with self._store():
            rows = await self._requests.find(statuses=_statuses(status))
        return newest_first(rows)

    async def pending_reviews(self, nri_id: str) -> list[ServiceRequest]:
        completed = await self.list_for_nri(nri_id, status=RequestStatus.completed)
        return [r for r in completed if not r.reviewed]

    async def reviews_by_nri(self, nri_id: str) -> list[Review]:
        async with self._store():
            rows = await self._reviews.list_for_nri(nri_id)
        return newest_first(rows)

    async def reviews_for_caretaker(self, caretaker_id: str) -> list[Review]:
        async with self._store():
            rows = await self._reviews.list_for_caretaker(caretaker_id)
        return newest_first(rows)

    async def _get(self, request_id: str) -> ServiceRequest:
        req = await self._requests.get(request_id)
        if req is None:
            raise RequestNotFoundError(request_id)
        return req

    async def _mark_reviewed(self, request_id: str) -> None:
        try:
            await self._requests.mark_reviewed(request_id)
            await self._session.commit()
        except SQLAlchemyError as e:
            # The review exists; a later submission re-checks it and repairs the flag.
            await self._session.rollback()
            log.warning("review_flag_update_failed", request_id=request_id, error=str(e))

    @asynccontextmanager
    async def _store(self) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self._session.rollback()
            log.warning("request_store_failed", error=str(e))
            raise WorkflowStoreError() from e


def _statuses(status: RequestStatus | None) -> frozenset[RequestStatus] | None:
    return frozenset({status}) if status is not None else None


# --- Module Notes -----------------------------------------------------------
# Validation (ownership, state, rating) happens before any write. Store failures surface
# as WorkflowStoreError, which the HTTP layer reports as a retryable 503.
