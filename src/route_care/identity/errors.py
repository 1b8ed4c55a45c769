"""
route_care.identity.errors

Typed identity failures and their user-facing messages.

Responsibilities:
- Enumerate the failure codes the identity adapter may raise.
- Map each code to a human-readable message (raw codes never reach users).
"""

from __future__ import annotations

import enum


class IdentityErrorCode(enum.StrEnum):
    email_in_use = "email-in-use"
    invalid_email = "invalid-email"
    weak_password = "weak-password"
    not_found = "not-found"
    wrong_password = "wrong-password"
    invalid_credential = "invalid-credential"
    account_blocked = "account-blocked"


BLOCKED_MESSAGE = "Your account has been blocked. Please contact the administrator."

_MESSAGES: dict[IdentityErrorCode, str] = {
    IdentityErrorCode.email_in_use: "An account with this email already exists.",
    IdentityErrorCode.invalid_email: "Invalid email address.",
    IdentityErrorCode.weak_password: "Password is too weak.",
    IdentityErrorCode.not_found: "No account found with this email.",
    IdentityErrorCode.wrong_password: "Incorrect password.",
    IdentityErrorCode.invalid_credential: "Invalid email or password.",
    IdentityErrorCode.account_blocked: BLOCKED_MESSAGE,
}


def message_for(code: IdentityErrorCode | str | None, *, during: str = "login") -> str:
    try:
        return _MESSAGES[IdentityErrorCode(code)]
    except (KeyError, ValueError):
        if during == "signup":
            return "Failed to create account. Please try again."
        return "Failed to login. Please try again."


class IdentityError(Exception):
    def __init__(self, code: IdentityErrorCode) -> None:
        super().__init__(message_for(code))
        self.code = code

    @property
    def message(self) -> str:
        return str(self)


class AccountBlockedError(IdentityError):
    """Credentials were valid but the account is blocked; the principal was signed out."""

    def __init__(self) -> None:
        super().__init__(IdentityErrorCode.account_blocked)


class RegistrationError(Exception):
    """Form-level registration problems caught before the identity provider is called."""
