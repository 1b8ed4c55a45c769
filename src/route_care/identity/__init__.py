"""
route_care.identity

Identity provider adapter package.

Responsibilities:
- Credential verification, token issuance and sign-out (`provider`).
- Typed identity failures with user-facing messages (`errors`).
"""

# Package marker.
