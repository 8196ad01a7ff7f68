"""Booking status transitions.

Guarded transitions (cancel, complete, assign, start) check the caller and the
current status, then write through a status-guarded UPDATE inside one
``atomic`` unit so two racing requests can never both win. The administrative
override is separate: it writes whatever status an admin asks
for, without consulting the transition rules.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud, models
from ..core.config import settings
from ..core.exceptions import (
    Conflict,
    Forbidden,
    InternalError,
    InvalidState,
    NotFound,
    TooLate,
)
from ..core.identity import CallerIdentity
from ..database import atomic
from ..models.base import utcnow
from ..models.booking_status import (
    NOT_COMPLETABLE_STATUSES,
    TERMINAL_STATUSES,
    BookingStatus,
)
from ..models.payment import PaymentMethod, PaymentStatus
from ..models.technician_profile import TechnicianStatus

logger = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
TECHNICIAN_JOB_STATUSES = (
    BookingStatus.ASSIGNED,
    BookingStatus.IN_PROGRESS,
    BookingStatus.COMPLETED,
)
UPCOMING_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.ASSIGNED,
    BookingStatus.IN_PROGRESS,
)
PAST_STATUSES = (
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.REFUNDED,
)


def _statuses_except(*allowed: BookingStatus) -> List[BookingStatus]:
    return [s for s in BookingStatus if s not in allowed]


def _as_naive_utc(moment: Optional[datetime]) -> datetime:
    if moment is None:
        return utcnow()
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def _get_booking_or_404(db: Session, booking_id: int) -> models.Booking:
    booking = crud.booking.get_booking_with_context(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found")
    return booking


def _is_assigned_technician(booking: models.Booking, caller: CallerIdentity) -> bool:
    return (
        caller.is_technician
        and booking.technician_id is not None
        and booking.technician_id == caller.id
    )


def _require_admin(caller: CallerIdentity) -> None:
    if not caller.is_admin:
        raise Forbidden("Access denied. Admin privileges required.")


# ─── Guarded transitions ───────────────────────────────────────────────────────

def cancel_booking(
    db: Session,
    booking_id: int,
    caller: CallerIdentity,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Booking:
    """Cancel a booking on behalf of its client, its technician or an admin.

    Non-admin callers must cancel at least ``CANCELLATION_WINDOW_HOURS`` before
    the scheduled time. Existing payments are left as they are: cash needs no
    refund and other methods are followed up by hand.
    """
    booking = _get_booking_or_404(db, booking_id)

    is_owner = caller.is_client and booking.client_id == caller.id
    if not (is_owner or caller.is_admin or _is_assigned_technician(booking, caller)):
        raise Forbidden("You do not have permission to cancel this booking")

    if booking.status in TERMINAL_STATUSES:
        raise InvalidState(f"Cannot cancel booking with status: {booking.status.value}")

    now = _as_naive_utc(now)
    window_hours = settings.CANCELLATION_WINDOW_HOURS
    if booking.scheduled_date - now < timedelta(hours=window_hours) and not caller.is_admin:
        raise TooLate(
            f"Bookings cannot be cancelled less than {window_hours} hours before the "
            "appointment time. Please contact us directly."
        )

    internal_notes = f"Cancelled: {reason}" if reason else "Cancelled by user"
    try:
        with atomic(db):
            changed = crud.booking.guarded_update(
                db,
                booking.id,
                TERMINAL_STATUSES,
                {
                    models.Booking.status: BookingStatus.CANCELLED,
                    models.Booking.internal_notes: internal_notes,
                },
                previous_status=booking.status,
            )
            if not changed:
                raise InvalidState("Booking can no longer be cancelled")
    except SQLAlchemyError:
        logger.exception("Booking cancellation failed for booking %s", booking_id)
        raise InternalError("Failed to cancel booking. Please try again.")

    db.refresh(booking)
    logger.info(
        "Booking %s cancelled by %s %s",
        booking.booking_number,
        caller.role.value,
        caller.id,
    )
    return booking


def complete_booking(
    db: Session,
    booking_id: int,
    caller: CallerIdentity,
    payment_received: bool = False,
    now: Optional[datetime] = None,
) -> Tuple[models.Booking, Optional[models.Payment]]:
    """Mark a booking completed and, when cash was collected, record it.

    The status change, the payment row and the technician's job counter are
    written in one unit. Final price is the estimated price: jobs are settled
    in cash at the quoted amount.
    """
    booking = _get_booking_or_404(db, booking_id)

    if not (caller.is_admin or _is_assigned_technician(booking, caller)):
        raise Forbidden("Not authorized to complete this booking")

    now = _as_naive_utc(now)
    technician_id = booking.technician_id
    amount = booking.estimated_price if booking.estimated_price is not None else Decimal("0")
    payment: Optional[models.Payment] = None
    try:
        with atomic(db):
            changed = crud.booking.guarded_update(
                db,
                booking.id,
                NOT_COMPLETABLE_STATUSES,
                {
                    models.Booking.status: BookingStatus.COMPLETED,
                    models.Booking.completed_at: now,
                    models.Booking.final_price: models.Booking.estimated_price,
                },
                previous_status=booking.status,
            )
            if not changed:
                raise InvalidState("Booking can no longer be completed")

            if payment_received:
                payment = models.Payment(
                    booking_id=booking.id,
                    amount=amount,
                    method=PaymentMethod.CASH,
                    status=PaymentStatus.PAID,
                    paid_at=now,
                )
                db.add(payment)
                db.flush()
                if technician_id is not None:
                    crud.technician.increment_completed_jobs(db, technician_id)
    except IntegrityError:
        logger.warning("Duplicate payment rejected for booking %s", booking_id)
        raise Conflict("A payment has already been recorded for this booking")
    except SQLAlchemyError:
        logger.exception("Booking completion failed for booking %s", booking_id)
        raise InternalError("Failed to complete booking")

    db.refresh(booking)
    if payment is not None:
        db.refresh(payment)
    logger.info(
        "Booking %s completed by %s %s payment_received=%s",
        booking.booking_number,
        caller.role.value,
        caller.id,
        payment_received,
    )
    return booking, payment


def assign_technician(
    db: Session,
    booking_id: int,
    caller: CallerIdentity,
    technician_id: int,
    notes: Optional[str] = None,
) -> Tuple[models.Booking, models.JobAssignment]:
    _require_admin(caller)
    booking = _get_booking_or_404(db, booking_id)

    if booking.status not in ASSIGNABLE_STATUSES:
        raise InvalidState(
            f"Cannot assign technician to booking with status: {booking.status.value}"
        )

    technician = crud.technician.get_profile(db, technician_id)
    if technician is None:
        raise NotFound("Technician not found")
    if technician.status != TechnicianStatus.ACTIVE:
        raise InvalidState(f"Technician is not active (status: {technician.status.value})")

    specialties = [s for s in (technician.specialties or []) if isinstance(s, str)]
    if specialties and booking.service is not None:
        service_name = booking.service.name.lower()
        if not any(s.lower() in service_name or service_name in s.lower() for s in specialties):
            logger.warning(
                "Assigning technician %s to service %s outside their specialties",
                technician_id,
                booking.service.name,
            )

    assignment = models.JobAssignment(
        booking_id=booking.id,
        technician_id=technician_id,
        assigned_by_id=caller.id,
        notes=notes or "Auto-assigned by system",
    )
    try:
        with atomic(db):
            changed = crud.booking.guarded_update(
                db,
                booking.id,
                _statuses_except(*ASSIGNABLE_STATUSES),
                {
                    models.Booking.technician_id: technician_id,
                    models.Booking.status: BookingStatus.ASSIGNED,
                },
                previous_status=booking.status,
            )
            if not changed:
                raise InvalidState("Booking can no longer be assigned")
            db.add(assignment)
    except SQLAlchemyError:
        logger.exception("Technician assignment failed for booking %s", booking_id)
        raise InternalError("Failed to assign technician. Please try again.")

    db.refresh(assignment)
    return crud.booking.get_booking_with_context(db, booking_id), assignment


def start_job(
    db: Session,
    booking_id: int,
    caller: CallerIdentity,
    notes: Optional[str] = None,
) -> models.Booking:
    """Move an assigned job to IN_PROGRESS. Completion goes through ``complete_booking``."""
    if not caller.is_technician:
        raise Forbidden("Access denied. Technician privileges required.")

    booking = crud.booking.get_booking(db, booking_id)
    if booking is None or booking.technician_id != caller.id:
        raise NotFound("Job not found or not assigned to you")
    if booking.status != BookingStatus.ASSIGNED:
        raise InvalidState("Can only start jobs that are assigned to you")

    values = {models.Booking.status: BookingStatus.IN_PROGRESS}
    if notes:
        values[models.Booking.internal_notes] = notes
    try:
        with atomic(db):
            changed = crud.booking.guarded_update(
                db,
                booking.id,
                _statuses_except(BookingStatus.ASSIGNED),
                values,
                previous_status=booking.status,
            )
            if not changed:
                raise InvalidState("Can only start jobs that are assigned to you")
    except SQLAlchemyError:
        logger.exception("Job start failed for booking %s", booking_id)
        raise InternalError("Failed to update job status")

    return crud.booking.get_booking_with_context(db, booking_id)


# ─── Administrative override ───────────────────────────────────────────────────

def override_booking_status(
    db: Session,
    booking_id: int,
    caller: CallerIdentity,
    status: object,
    technician_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> models.Booking:
    """Set any status on any booking. Admin escape hatch, not a state-machine edge.

    Internal notes are overwritten with ``notes`` even when it is empty.
    """
    _require_admin(caller)
    new_status = BookingStatus.parse(status)

    booking = _get_booking_or_404(db, booking_id)
    if technician_id is not None and crud.technician.get_profile(db, technician_id) is None:
        raise NotFound("Technician not found")

    previous = booking.status
    try:
        with atomic(db):
            booking.status = new_status
            booking.internal_notes = notes
            if technician_id is not None:
                booking.technician_id = technician_id
            db.add(booking)
    except SQLAlchemyError:
        logger.exception("Administrative status update failed for booking %s", booking_id)
        raise InternalError("Failed to update booking")

    logger.warning(
        "Administrative override on booking %s: %s -> %s by admin %s",
        booking_id,
        getattr(previous, "value", previous),
        new_status.value,
        caller.id,
    )
    return crud.booking.get_booking_with_context(db, booking_id)


# ─── Read models ───────────────────────────────────────────────────────────────

def list_technician_jobs(db: Session, caller: CallerIdentity) -> List[models.Booking]:
    if not caller.is_technician:
        raise Forbidden("Access denied. Technician privileges required.")
    return crud.booking.get_jobs_for_technician(db, caller.id, TECHNICIAN_JOB_STATUSES)


def get_client_booking(db: Session, booking_id: int, caller: CallerIdentity) -> models.Booking:
    if not caller.is_client:
        raise Forbidden("Customer access required")
    booking = crud.booking.get_booking_with_context(db, booking_id)
    # Other clients' bookings are reported as missing, not forbidden
    if booking is None or booking.client_id != caller.id:
        raise NotFound("Booking not found")
    return booking


def list_client_bookings(
    db: Session, caller: CallerIdentity, status_filter: Optional[str] = None
) -> List[models.Booking]:
    if not caller.is_client:
        raise Forbidden("Customer access required")
    statuses = None
    if status_filter == "upcoming":
        statuses = UPCOMING_STATUSES
    elif status_filter == "past":
        statuses = PAST_STATUSES
    elif status_filter:
        statuses = (BookingStatus.parse(status_filter),)
    return crud.booking.get_bookings_by_client(db, caller.id, statuses=statuses)


def booking_stats(db: Session, total_bookings: int) -> dict:
    return {
        "pending": crud.booking.count_by_status(db, BookingStatus.PENDING),
        "assigned": crud.booking.count_by_status(db, BookingStatus.ASSIGNED),
        "completed": crud.booking.count_by_status(db, BookingStatus.COMPLETED),
        "total_revenue": crud.booking.completed_revenue(db) or 0,
        "total_bookings": total_bookings,
    }


def list_bookings_for_admin(
    db: Session,
    caller: CallerIdentity,
    status_filter: Optional[str] = None,
    limit: int = 50,
) -> Tuple[List[models.Booking], dict]:
    _require_admin(caller)
    status = BookingStatus.parse(status_filter) if status_filter else None
    limit = max(1, min(limit, settings.ADMIN_BOOKINGS_MAX_LIMIT))
    bookings = crud.booking.get_bookings_for_admin(db, status=status, limit=limit)
    return bookings, booking_stats(db, len(bookings))
