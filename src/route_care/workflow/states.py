"""
route_care.workflow.states

Service-request state machine (pure functions, no I/O).

Responsibilities:
- Define request statuses and which of them count as active.
- Plan caretaker status updates, including the completion side effect.
- Validate review eligibility and ratings before anything touches the store.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime

from route_care.workflow.errors import (
    InvalidRatingError,
    InvalidTransitionError,
    ReviewNotAllowedError,
)

MIN_RATING = 1
MAX_RATING = 5


class RequestStatus(enum.StrEnum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES: frozenset[RequestStatus] = frozenset(
    {RequestStatus.pending, RequestStatus.in_progress}
)


@dataclass(frozen=True, slots=True)
class StatusUpdate:
    """Field values to write for one caretaker update."""

    status: RequestStatus
    remarks: str
    proof: str
    updated_at: datetime
    completed_at: datetime | None


def plan_status_update(
    *,
    current: RequestStatus,
    current_completed_at: datetime | None,
    target: RequestStatus,
    remarks: str,
    proof: str,
    now: datetime,
) -> StatusUpdate:
    """
    Moves between `pending` and `in-progress` are free in both directions so a caretaker
    can correct a mistake. `completed` is terminal: once entered, the request can only be
    re-saved as completed (e.g. to attach proof), which keeps the original `completed_at`.
    """

    if current is RequestStatus.completed and target is not RequestStatus.completed:
        raise InvalidTransitionError("A completed request cannot be moved back.")

    if target is RequestStatus.completed:
        completed_at = current_completed_at if current is RequestStatus.completed else now
        # Rows written before completed_at existed get one on their next save.
        completed_at = completed_at or now
    else:
        completed_at = None

    return StatusUpdate(
        status=target,
        remarks=remarks.strip(),
        proof=proof,
        updated_at=now,
        completed_at=completed_at,
    )


def ensure_reviewable(*, status: RequestStatus, reviewed: bool) -> None:
    if status is not RequestStatus.completed:
        raise ReviewNotAllowedError("Only completed requests can be reviewed.")
    if reviewed:
        raise ReviewNotAllowedError("This request has already been reviewed.")


def validate_rating(rating: object) -> int:
    # bool is an int subclass; a checkbox value must not pass as a rating.
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError()
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError()
    return rating
