"""Technician administration and technician-facing performance figures.

Admins list, approve, activate and suspend technicians. Technicians read
their own monthly performance and their completed-job history.
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud, models
from ..core.config import settings
from ..core.exceptions import Forbidden, InternalError, NotFound, ValidationFailed
from ..core.identity import CallerIdentity
from ..database import atomic
from ..models.base import utcnow
from ..models.technician_profile import TechnicianStatus

logger = logging.getLogger(__name__)

TECHNICIAN_ACTIONS = {
    "approve": "approved",
    "activate": "activated",
    "suspend": "suspended",
}
BULK_ACTIONS = {
    "bulkActivate": (TechnicianStatus.ACTIVE, "activated"),
    "bulkSuspend": (TechnicianStatus.SUSPENDED, "suspended"),
}
DEFAULT_SUSPEND_NOTES = "Suspended by admin"

_TENTH = Decimal("0.1")
_MILLS = Decimal("0.001")


def _require_admin(caller: CallerIdentity) -> None:
    if not caller.is_admin:
        raise Forbidden("Access denied. Admin privileges required.")


def _require_technician(caller: CallerIdentity) -> None:
    if not caller.is_technician:
        raise Forbidden("Access denied. Technician privileges required.")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(_MILLS, rounding=ROUND_HALF_UP)


def _one_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.0")
    return Decimal(str(value)).quantize(_TENTH, rounding=ROUND_HALF_UP)


def _has_specialty(profile: models.TechnicianProfile, wanted: Sequence[str]) -> bool:
    have = {s.lower() for s in (profile.specialties or []) if isinstance(s, str)}
    return any(w.lower() in have for w in wanted)


# ─── Admin ─────────────────────────────────────────────────────────────────────

def list_technicians_for_admin(
    db: Session,
    caller: CallerIdentity,
    status_filter: Optional[str] = None,
    specialties: Iterable[str] = (),
) -> Tuple[List[models.TechnicianProfile], dict]:
    """Technicians for the admin dashboard plus counts over the returned set.

    ``specialties`` keeps technicians offering any of the named trades,
    compared case-insensitively.
    """
    _require_admin(caller)
    status = TechnicianStatus.parse(status_filter) if status_filter else None
    profiles = crud.technician.get_profiles(db, status=status)
    wanted = [s.strip() for s in specialties if s and s.strip()]
    if wanted:
        profiles = [p for p in profiles if _has_specialty(p, wanted)]

    ratings = [Decimal(str(p.rating or 0)) for p in profiles]
    average = sum(ratings, Decimal("0")) / len(ratings) if ratings else None
    stats = {
        "total": len(profiles),
        "active": sum(1 for p in profiles if p.status == TechnicianStatus.ACTIVE),
        "pending": sum(1 for p in profiles if p.status == TechnicianStatus.PENDING),
        "inactive": sum(1 for p in profiles if p.status == TechnicianStatus.INACTIVE),
        "suspended": sum(1 for p in profiles if p.status == TechnicianStatus.SUSPENDED),
        "average_rating": _one_decimal(average),
        "total_completed_jobs": sum(p.completed_jobs or 0 for p in profiles),
    }
    return profiles, stats


def manage_technician(
    db: Session,
    caller: CallerIdentity,
    technician_id: Optional[int],
    action: Optional[str],
    reason: Optional[str] = None,
) -> Tuple[models.TechnicianProfile, str]:
    """Apply one admin action to a technician and return it with its past tense.

    ``approve`` activates and marks the technician verified, ``activate``
    only activates, ``suspend`` records ``reason`` in the internal notes.
    """
    _require_admin(caller)
    if not technician_id:
        raise ValidationFailed("Technician ID is required", {"technicianId": "required"})
    profile = crud.technician.get_profile(db, technician_id)
    if profile is None:
        raise NotFound("Technician not found")
    if action not in TECHNICIAN_ACTIONS:
        raise ValidationFailed("Invalid action", {"action": "invalid"})

    try:
        with atomic(db):
            # Attribute writes so the status listener sees the change
            if action == "approve":
                profile.status = TechnicianStatus.ACTIVE
                profile.verified = True
            elif action == "activate":
                profile.status = TechnicianStatus.ACTIVE
            else:
                profile.status = TechnicianStatus.SUSPENDED
                profile.internal_notes = reason or DEFAULT_SUSPEND_NOTES
    except SQLAlchemyError:
        logger.exception("Technician action %s failed for technician %s", action, technician_id)
        raise InternalError("Failed to perform technician action")

    db.refresh(profile)
    logger.info("Technician %s %s by admin %s", technician_id, TECHNICIAN_ACTIONS[action], caller.id)
    return profile, TECHNICIAN_ACTIONS[action]


def bulk_update_technicians(
    db: Session,
    caller: CallerIdentity,
    action: Optional[str],
    technician_ids,
) -> Tuple[int, str]:
    """Set many technicians ACTIVE or SUSPENDED at once; returns ``(count, verb)``."""
    _require_admin(caller)
    if not isinstance(technician_ids, list) or not technician_ids:
        raise ValidationFailed(
            "Valid technician IDs array required", {"technicianIds": "required"}
        )
    if action not in BULK_ACTIONS:
        raise ValidationFailed("Invalid bulk action", {"action": "invalid"})

    status, verb = BULK_ACTIONS[action]
    try:
        with atomic(db):
            count = crud.technician.set_status_bulk(db, technician_ids, status)
    except SQLAlchemyError:
        logger.exception("Bulk technician action %s failed", action)
        raise InternalError("Failed to perform bulk action")

    db.expire_all()
    logger.info(
        "Bulk %s of %d technicians by admin %s (ids=%s)",
        verb,
        count,
        caller.id,
        technician_ids,
    )
    return count, verb


# ─── Technician ────────────────────────────────────────────────────────────────

def _month_bounds(month: int, year: int) -> Tuple[datetime, datetime]:
    start = datetime(year, month, 1)
    if month == 12:
        return start, datetime(year + 1, 1, 1)
    return start, datetime(year, month + 1, 1)


def technician_performance(
    db: Session,
    caller: CallerIdentity,
    month: Optional[int] = None,
    year: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Jobs, completion rate, earnings and rating for one calendar month.

    ``month`` is 1-based and defaults, with ``year``, to the current month.
    """
    _require_technician(caller)
    now = now or utcnow()
    month = now.month if month is None else month
    year = now.year if year is None else year
    if not 1 <= month <= 12:
        raise ValidationFailed("Month must be between 1 and 12", {"month": "out_of_range"})
    if not 1 <= year <= 9999:
        raise ValidationFailed("Invalid year", {"year": "out_of_range"})

    start, end = _month_bounds(month, year)
    total_jobs = crud.booking.count_assigned_between(db, caller.id, start, end)
    completed_jobs, earnings = crud.booking.completed_totals_for_technician(
        db, caller.id, start=start, end=end
    )
    average = crud.review.average_rating_for_technician_between(db, caller.id, start, end)

    completion_rate = 0
    if total_jobs:
        completion_rate = int(
            (Decimal(completed_jobs) * 100 / Decimal(total_jobs)).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            )
        )
    return {
        "total_jobs": total_jobs,
        "completed_jobs": completed_jobs,
        "completion_rate": completion_rate,
        "earnings": _money(earnings),
        "average_rating": _one_decimal(average),
    }


def technician_history(
    db: Session, caller: CallerIdentity, limit: Optional[int] = None
) -> Tuple[List[models.Booking], dict]:
    """Most recent completed jobs with lifetime totals."""
    _require_technician(caller)
    if limit is None:
        limit = settings.TECHNICIAN_HISTORY_DEFAULT_LIMIT
    limit = max(1, min(limit, settings.TECHNICIAN_HISTORY_MAX_LIMIT))

    jobs = crud.booking.get_completed_jobs_for_technician(db, caller.id, limit=limit)
    total_jobs, earnings = crud.booking.completed_totals_for_technician(db, caller.id)
    profile = crud.technician.get_profile(db, caller.id)
    return jobs, {
        "total_jobs": total_jobs,
        "total_earnings": _money(earnings),
        "average_rating": _one_decimal(profile.rating if profile else None),
    }
