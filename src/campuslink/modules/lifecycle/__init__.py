"""
Lifecycle Module

Verification deadlines and account status: the scheduled deactivation and
warning sweep, reactivation, deadline extensions and suspensions.

Admin Endpoints:
- POST /admin/lifecycle/run
- GET /admin/lifecycle/stats
- POST /admin/lifecycle/principals/{id}/extend-deadline
- POST /admin/lifecycle/principals/{id}/reactivate
- POST /admin/lifecycle/principals/{id}/suspend
- POST /admin/lifecycle/principals/{id}/restore
"""

from .admin_router import router as admin_router
from .jobs import register_lifecycle_jobs

__all__ = ["admin_router", "register_lifecycle_jobs"]
