"""
Account Lifecycle Background Jobs

Scheduled sweep over principals with a verification deadline:
1. Deactivate accounts whose deadline passed without completed verification
2. Warn accounts whose deadline falls within the warning window

Design Principles:
- The sweep is idempotent: deactivated principals are no longer active and
  warned principals are flagged, so neither is selected again
- Each principal is processed in its own database session
- Individual failures are collected in the report and never stop the sweep
- ``now`` is injectable; nothing depends on how often the sweep runs

Schedule:
- Runs every ``lifecycle_interval_minutes`` (hourly by default)
- Can also be triggered manually via the admin endpoint
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from apscheduler.triggers.interval import IntervalTrigger

from campuslink.core.config import settings
from campuslink.core.database import async_session_maker
from campuslink.core.email import send_account_deactivated, send_deactivation_warning
from campuslink.core.scheduler import register_job
from campuslink.modules.lifecycle.service import auto_deactivate
from campuslink.modules.principals import access_policy, repository

logger = logging.getLogger(__name__)

# Job ID for registration and manual triggering
JOB_ID_LIFECYCLE_SWEEP = "lifecycle_sweep"


def _new_report(now: datetime) -> dict[str, Any]:
    return {
        "executed_at": now.isoformat(),
        "deactivated": [],
        "warned": [],
        "total_deactivated": 0,
        "total_warned": 0,
        "total_errors": 0,
        "errors": [],
    }


async def _deactivate_principal(principal_id: UUID, now: datetime) -> dict[str, Any] | None:
    """
    Deactivate a single principal if it still qualifies.

    Returns:
        Result dict, or None if the principal no longer qualifies
    """
    async with async_session_maker() as db:
        if not await auto_deactivate(db, principal_id, now):
            return None

        principal = await repository.get_by_id(db, principal_id)

        logger.info(f"Auto-deactivated principal {principal_id}: deadline passed")

        email_sent = await send_account_deactivated(
            to_email=principal.email,
            user_name=principal.display_name,
        )
        if not email_sent:
            logger.error(f"Failed to send deactivation email to principal {principal_id}")

        return {
            "principal_id": str(principal_id),
            "status": "deactivated",
            "email_sent": email_sent,
        }


async def _warn_principal(principal_id: UUID, now: datetime) -> dict[str, Any] | None:
    """
    Flag and warn a single principal about its approaching deadline.

    The flag is committed before the email goes out; a failed email is
    logged and not retried.
    """
    async with async_session_maker() as db:
        if not await repository.mark_warning_sent_if_pending(db, principal_id):
            return None

        principal = await repository.get_by_id(db, principal_id)

        email_sent = await send_deactivation_warning(
            to_email=principal.email,
            user_name=principal.display_name,
            deadline=principal.verification_deadline,
        )
        if not email_sent:
            logger.error(f"Failed to send deactivation warning to principal {principal_id}")

        logger.info(f"Sent deactivation warning to principal {principal_id}")

        return {
            "principal_id": str(principal_id),
            "status": "sent" if email_sent else "marked_sent_email_failed",
            "deadline": principal.verification_deadline.isoformat(),
        }


async def deactivate_expired_accounts(
    now: datetime | None = None,
    results: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Deactivation step of the sweep. Appends to ``results`` when given."""
    now = now or datetime.now(UTC)
    results = results if results is not None else _new_report(now)

    async with async_session_maker() as db:
        candidates = await repository.get_deactivation_candidates(db, now)
        candidate_ids = [
            p.id for p in candidates if not access_policy.has_completed_verification(p)
        ]

    logger.info(f"Found {len(candidate_ids)} principals past their verification deadline")

    for principal_id in candidate_ids:
        try:
            result = await _deactivate_principal(principal_id, now)
            if result:
                results["deactivated"].append(result)
                results["total_deactivated"] += 1
        except Exception as e:
            logger.error(f"Error deactivating principal {principal_id}: {e}", exc_info=True)
            results["errors"].append(
                {"principal_id": str(principal_id), "step": "deactivate", "error": str(e)}
            )
            results["total_errors"] += 1

    return results


async def send_deactivation_warnings(
    now: datetime | None = None,
    results: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Warning step of the sweep. Appends to ``results`` when given."""
    now = now or datetime.now(UTC)
    results = results if results is not None else _new_report(now)
    window_end = now + timedelta(hours=settings.deactivation_warning_hours)

    async with async_session_maker() as db:
        candidates = await repository.get_warning_candidates(db, now, window_end)
        candidate_ids = [
            p.id for p in candidates if not access_policy.has_completed_verification(p)
        ]

    logger.info(f"Found {len(candidate_ids)} principals to warn before deactivation")

    for principal_id in candidate_ids:
        try:
            result = await _warn_principal(principal_id, now)
            if result:
                results["warned"].append(result)
                results["total_warned"] += 1
        except Exception as e:
            logger.error(f"Error warning principal {principal_id}: {e}", exc_info=True)
            results["errors"].append(
                {"principal_id": str(principal_id), "step": "warn", "error": str(e)}
            )
            results["total_errors"] += 1

    return results


async def run_lifecycle_sweep(now: datetime | None = None) -> dict[str, Any]:
    """
    Deactivate overdue accounts, then warn accounts nearing their deadline.

    Returns:
        Dict with job execution summary including:
        - executed_at: When the sweep ran
        - deactivated / warned: Per-principal results
        - total_deactivated / total_warned / total_errors: Counts
        - errors: Per-principal failures
    """
    now = now or datetime.now(UTC)
    logger.info(f"Starting lifecycle sweep at {now.isoformat()}")

    results = _new_report(now)
    await deactivate_expired_accounts(now, results)
    await send_deactivation_warnings(now, results)

    logger.info(
        f"Lifecycle sweep completed. Deactivated: {results['total_deactivated']}, "
        f"Warned: {results['total_warned']}, Errors: {results['total_errors']}"
    )
    return results


def register_lifecycle_jobs() -> None:
    """
    Register the lifecycle sweep with the scheduler.

    Call during application startup; jobs registered before the scheduler
    starts are scheduled when it starts.
    """
    interval = settings.lifecycle_interval_minutes

    register_job(
        job_id=JOB_ID_LIFECYCLE_SWEEP,
        func=run_lifecycle_sweep,
        trigger=IntervalTrigger(minutes=interval),
    )
    logger.info(f"Registered job: {JOB_ID_LIFECYCLE_SWEEP} (interval: {interval} minutes)")
