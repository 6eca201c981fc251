from fastapi import APIRouter

from campuslink.modules.admissions import admin_router as admin_admissions_router
from campuslink.modules.lifecycle import admin_router as admin_lifecycle_router
from campuslink.modules.principals import router as principals_router
from campuslink.modules.verification import admin_router as admin_verifications_router
from campuslink.modules.verification import router as verification_router

api_router = APIRouter()

api_router.include_router(principals_router, prefix="/principals", tags=["Principals"])

api_router.include_router(verification_router, prefix="/verification", tags=["Verification"])

api_router.include_router(
    admin_admissions_router,
    prefix="/admin/admissions",
    tags=["Admin - Admission Registry"],
)

api_router.include_router(
    admin_verifications_router,
    prefix="/admin/verifications",
    tags=["Admin - Verifications"],
)

api_router.include_router(
    admin_lifecycle_router,
    prefix="/admin/lifecycle",
    tags=["Admin - Account Lifecycle"],
)
