"""
route_care.session

Session authorization package.

Responsibilities:
- Resolve who is signed in, with what role and standing (`resolver`).
- Decide whether a role-scoped view renders or redirects (`guard`).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The resolver is the only writer of session state; the guard and the HTTP layer
# only read what it publishes.
