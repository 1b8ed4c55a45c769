"""
route_care.workflow.views

Aggregate views over service requests and reviews (dashboards, profiles).

Responsibilities:
- "Recent N" ordering: newest `created_at` first, missing timestamps last.
- Request counts by lifecycle bucket.
- Average caretaker rating.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, TypeVar

from route_care.workflow.states import RequestStatus


class _Timestamped(Protocol):
    created_at: datetime | None


class _HasStatus(Protocol):
    status: RequestStatus


class _HasRating(Protocol):
    rating: int


T = TypeVar("T", bound=_Timestamped)


def newest_first(items: Iterable[T]) -> list[T]:
    # Missing created_at counts as the earliest possible time.
    return sorted(items, key=lambda item: item.created_at or datetime.min, reverse=True)


def recent(items: Iterable[T], limit: int) -> list[T]:
    return newest_first(items)[: max(limit, 0)]


@dataclass(frozen=True, slots=True)
class RequestCounts:
    total: int
    pending: int
    in_progress: int
    completed: int

    @property
    def active(self) -> int:
        return self.pending + self.in_progress


def count_requests(requests: Iterable[_HasStatus]) -> RequestCounts:
    pending = in_progress = completed = total = 0
    for r in requests:
        total += 1
        if r.status == RequestStatus.pending:
            pending += 1
        elif r.status == RequestStatus.in_progress:
            in_progress += 1
        elif r.status == RequestStatus.completed:
            completed += 1
    return RequestCounts(total=total, pending=pending, in_progress=in_progress, completed=completed)


def average_rating(reviews: Sequence[_HasRating]) -> float:
    if not reviews:
        return 0.0
    return sum(r.rating or 0 for r in reviews) / len(reviews)
