"""
Admission Registry Service

The authoritative list of admission numbers issued by the institution. Each
number can back at most one account: ``claim`` is a single conditional write,
so of any set of concurrent claimants exactly one wins.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.exceptions import ServiceError
from campuslink.modules.admissions import repository
from campuslink.modules.admissions.models import AdmissionRecord, normalize_admission_number
from campuslink.modules.admissions.schemas import AdmissionRecordCreate, AdmissionRecordUpdate

logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exceptions
# ============================================================================


class AdmissionNotFoundError(ServiceError):
    """Raised when an admission number is not in the registry."""

    def __init__(self, admission_number: str):
        super().__init__(
            message=f"Admission number {admission_number} not found in the registry.",
            error_code="ADMISSION_NOT_FOUND",
            status_code=404,
        )


class AdmissionAlreadyExistsError(ServiceError):
    """Raised when adding an admission number that is already registered."""

    def __init__(self, admission_number: str):
        super().__init__(
            message=f"Admission number {admission_number} already exists.",
            error_code="ADMISSION_ALREADY_EXISTS",
            status_code=409,
        )


class AdmissionAlreadyClaimedError(ServiceError):
    """Raised when another principal already holds the admission number."""

    def __init__(self, admission_number: str):
        super().__init__(
            message=(
                f"Admission number {admission_number} is already linked to another account. "
                "Re-check the number or contact an administrator."
            ),
            error_code="ADMISSION_ALREADY_CLAIMED",
            status_code=409,
        )


class AdmissionStillClaimedError(ServiceError):
    """Raised when removing a record that is still claimed."""

    def __init__(self, admission_number: str):
        super().__init__(
            message=f"Admission number {admission_number} is claimed; release it before removing.",
            error_code="ADMISSION_STILL_CLAIMED",
            status_code=409,
        )


@dataclass
class ImportReport:
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    def add_failure(self, admission_number: str, reason: str) -> None:
        self.failed += 1
        self.errors.append({"admission_number": admission_number, "reason": reason})


# ============================================================================
# Registry Operations
# ============================================================================


async def add(
    db: AsyncSession,
    data: AdmissionRecordCreate,
    added_by: UUID | None = None,
) -> AdmissionRecord:
    """
    Add an unclaimed record to the registry.

    Raises:
        AdmissionAlreadyExistsError: If the admission number is taken
    """
    key = normalize_admission_number(data.admission_number)

    if await repository.get(db, key):
        raise AdmissionAlreadyExistsError(key)

    try:
        record = await repository.create(
            db,
            admission_number=key,
            full_name=data.full_name.strip(),
            graduation_year=data.graduation_year,
            course=data.course,
            department=data.department,
            added_by=added_by,
        )
    except IntegrityError as e:
        await db.rollback()
        raise AdmissionAlreadyExistsError(key) from e

    logger.info(f"Added admission record {key}")
    return record


async def get(db: AsyncSession, admission_number: str) -> AdmissionRecord | None:
    """Look up a record. No side effects."""
    return await repository.get(db, normalize_admission_number(admission_number))


async def get_or_raise(db: AsyncSession, admission_number: str) -> AdmissionRecord:
    """
    Look up a record.

    Raises:
        AdmissionNotFoundError: If the number is not registered
    """
    key = normalize_admission_number(admission_number)
    record = await repository.get(db, key)
    if not record:
        raise AdmissionNotFoundError(key)
    return record


async def claim(
    db: AsyncSession,
    admission_number: str,
    principal_id: UUID,
    now: datetime | None = None,
) -> AdmissionRecord:
    """
    Bind an admission number to a principal.

    Claiming a number the same principal already holds succeeds without
    changes to ownership.

    Raises:
        AdmissionNotFoundError: If the number is not registered
        AdmissionAlreadyClaimedError: If another principal holds it
    """
    key = normalize_admission_number(admission_number)
    now = now or datetime.now(UTC)

    if await repository.claim_if_available(db, key, principal_id, now):
        logger.info(f"Admission number {key} claimed by principal {principal_id}")
        return await repository.get(db, key)

    record = await repository.get(db, key)
    if not record:
        raise AdmissionNotFoundError(key)

    logger.warning(
        f"Claim rejected: admission number {key} already held, requested by {principal_id}"
    )
    raise AdmissionAlreadyClaimedError(key)


async def release(db: AsyncSession, admission_number: str) -> AdmissionRecord:
    """
    Clear a claim unconditionally.

    Raises:
        AdmissionNotFoundError: If the number is not registered
    """
    key = normalize_admission_number(admission_number)

    if not await repository.release(db, key):
        raise AdmissionNotFoundError(key)

    logger.info(f"Released claim on admission number {key}")
    return await repository.get(db, key)


async def remove(db: AsyncSession, admission_number: str) -> None:
    """
    Delete an unclaimed record.

    Raises:
        AdmissionNotFoundError: If the number is not registered
        AdmissionStillClaimedError: If the record is claimed
    """
    key = normalize_admission_number(admission_number)

    if await repository.delete_if_unclaimed(db, key):
        logger.info(f"Removed admission record {key}")
        return

    if await repository.get(db, key):
        raise AdmissionStillClaimedError(key)

    raise AdmissionNotFoundError(key)


def _row_key(row: dict[str, Any] | AdmissionRecordCreate) -> str:
    raw = row.get("admission_number") if isinstance(row, dict) else row.admission_number
    return normalize_admission_number(raw) if isinstance(raw, str) else ""


def _validation_reason(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in error.errors()
    )


async def bulk_add(
    db: AsyncSession,
    records: list[dict[str, Any] | AdmissionRecordCreate],
    added_by: UUID | None = None,
) -> ImportReport:
    """
    Add many records, attempting every one.

    Each row is validated on its own. Invalid rows, duplicates (against the
    registry or earlier in the same batch) and per-row database failures are
    reported; they never stop the import.
    """
    report = ImportReport(total=len(records))
    seen: set[str] = set()

    for row in records:
        try:
            data = AdmissionRecordCreate.model_validate(row)
        except ValidationError as e:
            report.add_failure(_row_key(row), _validation_reason(e))
            continue

        key = data.admission_number

        if key in seen:
            report.add_failure(key, "Duplicate admission number in this import")
            continue
        seen.add(key)

        try:
            await add(db, data, added_by=added_by)
            report.successful += 1
        except ServiceError as e:
            report.add_failure(key, e.message)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to import admission record {key}: {e}", exc_info=True)
            report.add_failure(key, "Database error while saving this record")

    logger.info(
        f"Bulk import finished: {report.successful}/{report.total} added, {report.failed} failed"
    )
    return report


async def list_records(
    db: AsyncSession,
    *,
    graduation_year: int | None = None,
    course: str | None = None,
    claimed: bool | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[AdmissionRecord], int]:
    """Filtered, paginated registry listing ordered by admission number."""
    return await repository.list_records(
        db,
        graduation_year=graduation_year,
        course=course,
        claimed=claimed,
        search=search.strip() if search else None,
        skip=skip,
        limit=limit,
    )


async def update_details(
    db: AsyncSession,
    admission_number: str,
    data: AdmissionRecordUpdate,
) -> AdmissionRecord:
    """
    Correct descriptive fields of a record.

    Raises:
        AdmissionNotFoundError: If the number is not registered
    """
    record = await get_or_raise(db, admission_number)

    changes = data.model_dump(exclude_unset=True)
    if "full_name" in changes and changes["full_name"] is not None:
        changes["full_name"] = changes["full_name"].strip()

    if not changes:
        return record

    record = await repository.update_details(db, record, **changes)
    logger.info(f"Updated admission record {record.admission_number}: {sorted(changes)}")
    return record
