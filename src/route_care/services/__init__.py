"""
route_care.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and persistence decisions.
- Combine the identity adapter, account directory and repositories into use-case calls.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services take sessions/session factories explicitly so tests can hand them a temp DB.
