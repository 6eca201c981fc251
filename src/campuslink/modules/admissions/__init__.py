"""
Admissions Module

The admission registry: pre-issued admission numbers that students and
alumni claim during verification, plus fuzzy name matching against the
registry's canonical names.

API Endpoints (admin):
- GET/POST /admin/admissions - List / add records
- POST /admin/admissions/bulk - Bulk import
- GET/PATCH/DELETE /admin/admissions/{number} - Inspect, correct, remove
- POST /admin/admissions/{number}/release - Clear a claim
"""

from .admin_router import router as admin_router

__all__ = ["admin_router"]
