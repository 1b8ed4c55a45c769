"""
route_care.auth

Authentication/authorization package.

Responsibilities:
- Roles, account standings and the `Principal` type.
- JWT helpers and validation.
- FastAPI auth dependencies (principal, session state, guarded views).
"""

# Package marker.
