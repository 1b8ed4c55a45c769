"""
route_care.workflow

Service-request lifecycle package.

Responsibilities:
- Pure state machine and validation rules (`states`).
- Store-backed lifecycle engine (`engine`).
- Aggregate views used by dashboards (`views`).
"""

# Package marker; import submodules directly (db.models depends on `states`).
