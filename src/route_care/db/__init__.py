"""
route_care.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services and the session layer never build SQL themselves; they go through
# the repositories or the account directory.
