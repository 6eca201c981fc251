"""
Access Policy

Pure derivation of feature capabilities from a principal's role,
verification state and account state. Nothing here touches the database;
callers pass any object exposing the principal attributes.

Admins short-circuit every check: they are always fully verified, can use
every feature and can never be deactivated.
"""

import math
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from campuslink.modules.principals.models import AccountStatus, Role, VerificationStatus

DEACTIVATED_STATUSES = frozenset({AccountStatus.AUTO_DEACTIVATED, AccountStatus.SUSPENDED})


@dataclass(frozen=True)
class Capabilities:
    """Feature gates for a principal."""

    can_post_jobs: bool
    can_post_feed: bool
    can_message: bool
    can_accept_mentorship: bool

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)


NO_CAPABILITIES = Capabilities(
    can_post_jobs=False,
    can_post_feed=False,
    can_message=False,
    can_accept_mentorship=False,
)

ALL_CAPABILITIES = Capabilities(
    can_post_jobs=True,
    can_post_feed=True,
    can_message=True,
    can_accept_mentorship=True,
)


def _is_admin(p: Any) -> bool:
    return p.role == Role.ADMIN


def is_deactivated(p: Any) -> bool:
    """True for non-admins that are auto-deactivated or suspended."""
    if _is_admin(p):
        return False
    return p.account_status in DEACTIVATED_STATUSES


def is_fully_verified(p: Any) -> bool:
    """
    Both verification stages complete (document approved AND admission
    number verified) on an account that is not deactivated.

    Aspirants never set ``admission_verified`` so they only pass through the
    admin clause; see ``is_verified_aspirant`` for their path.
    """
    if _is_admin(p):
        return True

    if is_deactivated(p):
        return False

    return p.verification_status == VerificationStatus.APPROVED and p.admission_verified is True


def is_verified_aspirant(p: Any) -> bool:
    """Aspirant whose email OTP verification auto-approved the account."""
    return (
        p.role == Role.ASPIRANT
        and not is_deactivated(p)
        and p.verification_status == VerificationStatus.APPROVED
        and p.email_verified is True
    )


def has_completed_verification(p: Any) -> bool:
    """Whether the principal finished the verification path for its role."""
    return is_fully_verified(p) or is_verified_aspirant(p)


def can_post_jobs(p: Any) -> bool:
    if _is_admin(p):
        return True
    return p.role == Role.ALUMNI and is_fully_verified(p)


def can_accept_mentorship(p: Any) -> bool:
    if _is_admin(p):
        return True
    return p.role == Role.ALUMNI and is_fully_verified(p)


def can_post_feed(p: Any) -> bool:
    if _is_admin(p):
        return True
    return is_fully_verified(p) or is_verified_aspirant(p)


def can_message(p: Any) -> bool:
    if _is_admin(p):
        return True
    return is_fully_verified(p) or is_verified_aspirant(p)


def compute_capabilities(p: Any) -> Capabilities:
    """Derive all capability flags for a principal."""
    if _is_admin(p):
        return ALL_CAPABILITIES

    return Capabilities(
        can_post_jobs=can_post_jobs(p),
        can_post_feed=can_post_feed(p),
        can_message=can_message(p),
        can_accept_mentorship=can_accept_mentorship(p),
    )


def apply_capabilities(p: Any) -> Capabilities:
    """
    Overwrite the materialised flags on ``p`` from the policy.

    Must be called after every change to role, verification or account
    state, before the commit that persists that change. Also restores the
    admin invariant (admins are always active).
    """
    if _is_admin(p):
        p.account_status = AccountStatus.ACTIVE

    caps = compute_capabilities(p)
    p.can_post_jobs = caps.can_post_jobs
    p.can_post_feed = caps.can_post_feed
    p.can_message = caps.can_message
    p.can_accept_mentorship = caps.can_accept_mentorship
    return caps


def days_until_deactivation(p: Any, now: datetime | None = None) -> int | None:
    """Whole days (rounded up, never negative) until the verification deadline."""
    if p.verification_deadline is None:
        return None

    now = now or datetime.now(UTC)
    remaining = (p.verification_deadline - now).total_seconds() / 86400
    return max(0, math.ceil(remaining))


def verification_message(p: Any, now: datetime | None = None) -> dict[str, str | None]:
    """
    Banner text describing what the principal still has to do.

    Returns:
        Dict with ``message``, ``type`` (info | warning | error) and an
        optional ``action`` label
    """
    if _is_admin(p):
        return {"message": "Admin account - Full access enabled", "type": "info", "action": None}

    if p.account_status == AccountStatus.AUTO_DEACTIVATED:
        return {
            "message": "Your account has been deactivated due to incomplete verification. "
            "Complete verification to reactivate.",
            "type": "error",
            "action": "Complete Verification",
        }

    if p.account_status == AccountStatus.SUSPENDED:
        return {
            "message": "Your account has been suspended. Contact an administrator for assistance.",
            "type": "error",
            "action": None,
        }

    if has_completed_verification(p):
        return {"message": "Your account is fully verified!", "type": "info", "action": None}

    days = days_until_deactivation(p, now)
    if days is not None and days == 1:
        return {
            "message": "Urgent: complete verification within 1 day or your account will be deactivated",
            "type": "warning",
            "action": "Verify Now",
        }

    if p.verification_status == VerificationStatus.PENDING:
        return {
            "message": "Your documents are awaiting administrator review.",
            "type": "info",
            "action": None,
        }

    if p.verification_status == VerificationStatus.REJECTED:
        return {
            "message": "Your verification was not approved. Please submit a new request.",
            "type": "warning",
            "action": "Resubmit Verification",
        }

    if p.role == Role.ASPIRANT:
        return {
            "message": "Verify your email address to unlock the feed and messaging",
            "type": "warning",
            "action": "Verify Email",
        }

    return {
        "message": "Complete ID card and admission number verification to unlock all features",
        "type": "warning",
        "action": "Verify Now",
    }
