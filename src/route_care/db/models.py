"""
route_care.db.models

Persistence schema for the platform.

Responsibilities:
- Define ORM models for the collections the core reads and writes:
  - Credential: identity-provider record (email + password hash + epoch)
  - Account: role/status per principal
  - Profile / Connection: caretaker codes and NRI<->caretaker links
  - CareService: services a caretaker offers
  - ServiceRequest: an NRI's ask for a service, tracked through its lifecycle
  - Review: one rating closing out a completed request
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Enum, Float, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from route_care.auth.models import AccountStatus, Role
from route_care.db.base import Base
from route_care.workflow.states import RequestStatus


def _utcnow() -> datetime:
    # Naive UTC timestamps keep SQLite and Postgres comparisons consistent.
    return datetime.now(UTC).replace(tzinfo=None)


def _new_id() -> str:
    return uuid.uuid4().hex


class Credential(Base):
    __tablename__ = "credentials"

    subject: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    # Bumped on every sign-out; tokens carry the epoch they were issued under.
    epoch: Mapped[int] = mapped_column(nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


class Account(Base):
    __tablename__ = "accounts"

    subject: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role), nullable=False, index=True)
    # NULL is read as active by the account directory.
    status: Mapped[AccountStatus | None] = mapped_column(Enum(AccountStatus), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class Profile(Base):
    __tablename__ = "profiles"

    subject: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    caretaker_code: Mapped[str | None] = mapped_column(String(16), nullable=True, unique=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class Connection(Base):
    __tablename__ = "connections"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    nri_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    caretaker_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    __table_args__ = (UniqueConstraint("nri_id", "caretaker_id", name="uq_connection_pair"),)


class CareService(Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    caretaker_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    service_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("services.id", ondelete="SET NULL"), nullable=True
    )
    service_name: Mapped[str] = mapped_column(String(256), nullable=False)
    caretaker_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    nri_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    status: Mapped[RequestStatus] = mapped_column(Enum(RequestStatus), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    remarks: Mapped[str] = mapped_column(Text, nullable=False, default="")
    proof: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Nullable: rows imported without a timestamp sort last in "recent" listings.
    created_at: Mapped[datetime | None] = mapped_column(nullable=True, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (Index("ix_requests_caretaker_status", "caretaker_id", "status"),)


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    # Unique: the store itself refuses a second review for the same request.
    service_request_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("service_requests.id"), nullable=False, unique=True
    )
    caretaker_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    nri_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    service_name: Mapped[str] = mapped_column(String(256), nullable=False, default="Service")
    rating: Mapped[int] = mapped_column(nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime | None] = mapped_column(nullable=True, default=_utcnow)


# --- Module Notes -----------------------------------------------------------
# IDs are opaque hex strings, matching the document-store keys the clients already hold.
