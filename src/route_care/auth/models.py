"""
route_care.auth.models

Auth domain models.

Responsibilities:
- Define the roles and account standings known to the platform.
- Define the authenticated identity type (`Principal`) issued by the identity provider.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Role(enum.StrEnum):
    # Fixed at account creation; never changed afterwards.
    caretaker = "caretaker"
    nri = "nri"
    admin = "admin"

    @property
    def dashboard_path(self) -> str:
        return f"/{self.value}/dashboard"

    @classmethod
    def parse(cls, raw: str | None) -> Role | None:
        if raw is None:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


class AccountStatus(enum.StrEnum):
    active = "active"
    blocked = "blocked"


# Roles a user may pick on the registration form; admins are provisioned.
SELF_SERVICE_ROLES: frozenset[Role] = frozenset({Role.caretaker, Role.nri})


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity.

    `epoch` is the credential generation the principal was issued under; signing out
    bumps the stored generation so older tokens stop verifying.
    """

    subject: str
    email: str
    epoch: int = 0


# --- Module Notes -----------------------------------------------------------
# Role and status live on the Account record, not on the Principal; the session
# resolver joins the two.
