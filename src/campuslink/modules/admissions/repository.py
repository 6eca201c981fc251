"""
Admission Registry Repository

Database operations for admission records. Claiming and removal are single
conditional statements; callers learn whether the write happened from the
affected row count.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AdmissionRecord


async def create(
    db: AsyncSession,
    *,
    admission_number: str,
    full_name: str,
    graduation_year: int | None = None,
    course: str | None = None,
    department: str | None = None,
    added_by: UUID | None = None,
) -> AdmissionRecord:
    """Insert an unclaimed record and commit."""
    record = AdmissionRecord(
        admission_number=admission_number,
        full_name=full_name,
        graduation_year=graduation_year,
        course=course,
        department=department,
        claimed=False,
        claimed_by=None,
        claimed_at=None,
        added_by=added_by,
    )

    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


async def get(db: AsyncSession, admission_number: str) -> AdmissionRecord | None:
    """Get record by normalized admission number, always re-read from the database."""
    return await db.get(AdmissionRecord, admission_number, populate_existing=True)


async def claim_if_available(
    db: AsyncSession,
    admission_number: str,
    principal_id: UUID,
    now: datetime,
) -> bool:
    """
    Mark the record as claimed by ``principal_id`` unless someone else holds it.

    Returns:
        True if the row was updated (claimed now, or already held by the
        same principal)
    """
    result = await db.execute(
        update(AdmissionRecord)
        .where(
            and_(
                AdmissionRecord.admission_number == admission_number,
                or_(
                    AdmissionRecord.claimed.is_(False),
                    AdmissionRecord.claimed_by == principal_id,
                ),
            )
        )
        .values(claimed=True, claimed_by=principal_id, claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def release(db: AsyncSession, admission_number: str) -> bool:
    """Clear the claim columns. Returns False if the record does not exist."""
    result = await db.execute(
        update(AdmissionRecord)
        .where(AdmissionRecord.admission_number == admission_number)
        .values(claimed=False, claimed_by=None, claimed_at=None)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def delete_if_unclaimed(db: AsyncSession, admission_number: str) -> bool:
    """Delete the record only if it is not claimed."""
    result = await db.execute(
        delete(AdmissionRecord)
        .where(
            and_(
                AdmissionRecord.admission_number == admission_number,
                AdmissionRecord.claimed.is_(False),
            )
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


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
    """
    List records with optional filters.

    Returns:
        Tuple of (records, total count before pagination)
    """
    conditions = []

    if graduation_year is not None:
        conditions.append(AdmissionRecord.graduation_year == graduation_year)
    if course:
        conditions.append(AdmissionRecord.course.ilike(course))
    if claimed is not None:
        conditions.append(AdmissionRecord.claimed.is_(claimed))
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                AdmissionRecord.full_name.ilike(pattern),
                AdmissionRecord.admission_number.ilike(pattern),
            )
        )

    query = select(AdmissionRecord)
    count_query = select(func.count(AdmissionRecord.admission_number))
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar_one()

    result = await db.execute(
        query.order_by(AdmissionRecord.admission_number).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def update_details(db: AsyncSession, record: AdmissionRecord, **fields) -> AdmissionRecord:
    """Apply descriptive field changes and commit. Claim columns are not accepted."""
    for key, value in fields.items():
        setattr(record, key, value)

    await db.commit()
    await db.refresh(record)
    return record
