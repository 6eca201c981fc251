"""
Verification Module

Admission validation, verification requests and their admin review, and
email one-time codes for aspirants.

API Endpoints:
- POST /verification/validate-admission
- POST /verification/submit
- POST /verification/otp/send
- POST /verification/otp/verify
- GET /verification/me

Admin Endpoints:
- GET /admin/verifications
- GET /admin/verifications/{id}
- POST /admin/verifications/{id}/approve
- POST /admin/verifications/{id}/reject
"""

from .admin_router import router as admin_router
from .router import router

__all__ = ["admin_router", "router"]
