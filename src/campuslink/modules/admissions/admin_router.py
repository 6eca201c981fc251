"""
Admission Registry Admin Router

Endpoints for administrators to maintain the admission registry.
All endpoints require the admin role.

Endpoints:
- GET /admin/admissions - List records with filters and pagination
- POST /admin/admissions - Add a single record
- POST /admin/admissions/bulk - Bulk import records
- GET /admin/admissions/{number} - Get a record
- PATCH /admin/admissions/{number} - Correct descriptive fields
- POST /admin/admissions/{number}/release - Clear a stale claim
- DELETE /admin/admissions/{number} - Remove an unclaimed record
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.auth import CurrentUser, get_current_admin_user
from campuslink.core.database import get_db
from campuslink.core.exceptions import ServiceError, internal_error, to_http_exception
from campuslink.modules.admissions import service
from campuslink.modules.admissions.schemas import (
    AdmissionRecordCreate,
    AdmissionRecordListResponse,
    AdmissionRecordResponse,
    AdmissionRecordUpdate,
    BulkImportRequest,
    ImportReportResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=AdmissionRecordListResponse,
    summary="List Admission Records",
    description="""
Paginated registry listing.

**Filters:**
- `graduation_year`: Exact year
- `course`: Course name (case-insensitive)
- `claimed`: Only claimed / unclaimed records
- `search`: Substring of the name or admission number

**Access:** Admin only
""",
)
async def list_records(
    graduation_year: int | None = Query(None, ge=1900, le=2200),
    course: str | None = Query(None, min_length=1, max_length=200),
    claimed: bool | None = Query(None),
    search: str | None = Query(None, min_length=1, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> AdmissionRecordListResponse:
    try:
        records, total = await service.list_records(
            db,
            graduation_year=graduation_year,
            course=course,
            claimed=claimed,
            search=search,
            skip=skip,
            limit=limit,
        )
    except Exception as e:
        logger.exception(f"Error listing admission records: {e}")
        raise internal_error() from e

    return AdmissionRecordListResponse(
        items=[AdmissionRecordResponse.model_validate(r) for r in records],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post(
    "",
    response_model=AdmissionRecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Admission Record",
)
async def add_record(
    data: AdmissionRecordCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> AdmissionRecordResponse:
    try:
        record = await service.add(db, data, added_by=admin.id)
        logger.info(f"Admin {admin.id} added admission record {record.admission_number}")
        return AdmissionRecordResponse.model_validate(record)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error adding admission record: {e}")
        raise internal_error() from e


@router.post(
    "/bulk",
    response_model=ImportReportResponse,
    summary="Bulk Import Admission Records",
    description="""
Import many records at once. Every record is attempted; duplicates and
failures are listed in `errors` and never abort the import.

**Access:** Admin only
""",
)
async def bulk_import(
    data: BulkImportRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> ImportReportResponse:
    report = await service.bulk_add(db, data.records, added_by=admin.id)
    logger.info(
        f"Admin {admin.id} imported admission records: "
        f"successful={report.successful}, failed={report.failed}"
    )
    return ImportReportResponse.model_validate(report)


@router.get(
    "/{admission_number}",
    response_model=AdmissionRecordResponse,
    summary="Get Admission Record",
)
async def get_record(
    admission_number: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> AdmissionRecordResponse:
    try:
        record = await service.get_or_raise(db, admission_number)
        return AdmissionRecordResponse.model_validate(record)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.patch(
    "/{admission_number}",
    response_model=AdmissionRecordResponse,
    summary="Update Admission Record",
)
async def update_record(
    admission_number: str,
    data: AdmissionRecordUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> AdmissionRecordResponse:
    try:
        record = await service.update_details(db, admission_number, data)
        logger.info(f"Admin {admin.id} updated admission record {record.admission_number}")
        return AdmissionRecordResponse.model_validate(record)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error updating admission record {admission_number}: {e}")
        raise internal_error() from e


@router.post(
    "/{admission_number}/release",
    response_model=AdmissionRecordResponse,
    summary="Release Admission Claim",
    description="Clear the claim on a record so the number can be claimed again.",
)
async def release_record(
    admission_number: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> AdmissionRecordResponse:
    try:
        record = await service.release(db, admission_number)
        logger.info(f"Admin {admin.id} released claim on {record.admission_number}")
        return AdmissionRecordResponse.model_validate(record)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.delete(
    "/{admission_number}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove Admission Record",
)
async def remove_record(
    admission_number: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> None:
    try:
        await service.remove(db, admission_number)
        logger.info(f"Admin {admin.id} removed admission record {admission_number}")
    except ServiceError as e:
        raise to_http_exception(e) from e
