"""
route_care.api

HTTP API package for the Route Care service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, exception handlers and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request validation + session guard + delegation to services.
