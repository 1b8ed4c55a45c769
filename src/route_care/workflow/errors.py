"""
route_care.workflow.errors

Exceptions raised by the service-request workflow.

Responsibilities:
- Separate caller mistakes (validation, ownership, duplicates) from store failures.
- Carry the human-readable message surfaced to the initiating user.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class; `str(exc)` is safe to show to the user."""


class RequestNotFoundError(WorkflowError):
    def __init__(self, request_id: str) -> None:
        super().__init__("Service request not found")
        self.request_id = request_id


class ServiceNotFoundError(WorkflowError):
    def __init__(self, service_id: str) -> None:
        super().__init__("Service not found")
        self.service_id = service_id


class NotRequestOwnerError(WorkflowError):
    """The actor is not the caretaker/NRI the request belongs to."""

    def __init__(self, request_id: str) -> None:
        super().__init__("Service request not found")
        self.request_id = request_id


class WorkflowValidationError(WorkflowError):
    """Rejected before any write reaches the store."""


class InvalidTransitionError(WorkflowValidationError):
    pass


class ReviewNotAllowedError(WorkflowValidationError):
    pass


class InvalidRatingError(WorkflowValidationError):
    def __init__(self) -> None:
        super().__init__("Please select a star rating between 1 and 5.")


class DuplicateReviewError(WorkflowError):
    def __init__(self, request_id: str) -> None:
        super().__init__("This request has already been reviewed.")
        self.request_id = request_id


class WorkflowStoreError(WorkflowError):
    """The store rejected or failed a write; nothing is assumed to have changed."""

    retryable = True

    def __init__(self, message: str = "Failed to update request. Please try again.") -> None:
        super().__init__(message)
