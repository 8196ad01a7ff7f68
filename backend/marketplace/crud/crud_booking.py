from sqlalchemy import case, func
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional, Sequence

from .. import models
from ..models.booking_status import BookingStatus
from ..utils.status_logger import log_status_change


def _with_context(query):
    return query.options(
        selectinload(models.Booking.client),
        selectinload(models.Booking.service),
        selectinload(models.Booking.pricing_option),
        selectinload(models.Booking.technician).selectinload(models.TechnicianProfile.user),
        selectinload(models.Booking.payment),
        selectinload(models.Booking.review),
    )


# Technician job lists show active work first, finished work last
_JOB_STATUS_ORDER = case(
    (models.Booking.status == BookingStatus.ASSIGNED, 0),
    (models.Booking.status == BookingStatus.IN_PROGRESS, 1),
    (models.Booking.status == BookingStatus.COMPLETED, 2),
    else_=3,
)


class CRUDBooking:
    def get_booking(self, db: Session, booking_id: int) -> Optional[models.Booking]:
        return db.query(models.Booking).filter(models.Booking.id == booking_id).first()

    def get_booking_with_context(self, db: Session, booking_id: int) -> Optional[models.Booking]:
        return _with_context(db.query(models.Booking)).filter(models.Booking.id == booking_id).first()

    def get_completed_booking_for_client(
        self, db: Session, booking_id: int, client_id: int
    ) -> Optional[models.Booking]:
        return (
            db.query(models.Booking)
            .filter(
                models.Booking.id == booking_id,
                models.Booking.client_id == client_id,
                models.Booking.status == BookingStatus.COMPLETED,
            )
            .first()
        )

    def get_bookings_by_client(
        self,
        db: Session,
        client_id: int,
        statuses: Optional[Sequence[BookingStatus]] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[models.Booking]:
        query = _with_context(db.query(models.Booking)).filter(models.Booking.client_id == client_id)
        if statuses:
            query = query.filter(models.Booking.status.in_(list(statuses)))
        return (
            query.order_by(models.Booking.scheduled_date.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_jobs_for_technician(
        self, db: Session, technician_id: int, statuses: Sequence[BookingStatus]
    ) -> List[models.Booking]:
        return (
            _with_context(db.query(models.Booking))
            .filter(
                models.Booking.technician_id == technician_id,
                models.Booking.status.in_(list(statuses)),
            )
            .order_by(_JOB_STATUS_ORDER, models.Booking.scheduled_date.asc())
            .all()
        )

    def get_bookings_for_admin(
        self, db: Session, status: Optional[BookingStatus] = None, limit: int = 50
    ) -> List[models.Booking]:
        query = _with_context(db.query(models.Booking))
        if status is not None:
            query = query.filter(models.Booking.status == status)
        return (
            query.order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
            .limit(limit)
            .all()
        )

    def count_by_status(self, db: Session, status: BookingStatus) -> int:
        return db.query(func.count(models.Booking.id)).filter(models.Booking.status == status).scalar() or 0

    def completed_revenue(self, db: Session):
        return (
            db.query(func.coalesce(func.sum(models.Booking.final_price), 0))
            .filter(models.Booking.status == BookingStatus.COMPLETED)
            .scalar()
        )

    def count_assigned_between(self, db: Session, technician_id: int, start, end) -> int:
        """Bookings given to the technician that were created in ``[start, end)``."""
        return (
            db.query(func.count(models.Booking.id))
            .filter(
                models.Booking.technician_id == technician_id,
                models.Booking.created_at >= start,
                models.Booking.created_at < end,
            )
            .scalar()
            or 0
        )

    def completed_totals_for_technician(
        self, db: Session, technician_id: int, start=None, end=None
    ):
        """Return ``(count, earnings)`` over completed jobs, optionally by completion date."""
        query = db.query(
            func.count(models.Booking.id),
            func.coalesce(func.sum(models.Booking.final_price), 0),
        ).filter(
            models.Booking.technician_id == technician_id,
            models.Booking.status == BookingStatus.COMPLETED,
        )
        if start is not None:
            query = query.filter(models.Booking.completed_at >= start)
        if end is not None:
            query = query.filter(models.Booking.completed_at < end)
        return query.one()

    def get_completed_jobs_for_technician(
        self, db: Session, technician_id: int, limit: int = 20
    ) -> List[models.Booking]:
        return (
            _with_context(db.query(models.Booking))
            .filter(
                models.Booking.technician_id == technician_id,
                models.Booking.status == BookingStatus.COMPLETED,
            )
            .order_by(models.Booking.completed_at.desc(), models.Booking.id.desc())
            .limit(limit)
            .all()
        )

    def guarded_update(
        self,
        db: Session,
        booking_id: int,
        excluded_statuses: Sequence[BookingStatus],
        values: dict,
        previous_status: Optional[BookingStatus] = None,
    ) -> int:
        """Update a booking only while its status is outside ``excluded_statuses``.

        Returns the number of rows changed; 0 means another writer already
        moved the booking into one of the excluded statuses. A status write is
        logged here since bulk updates skip the attribute listeners.
        """
        changed = (
            db.query(models.Booking)
            .filter(
                models.Booking.id == booking_id,
                models.Booking.status.notin_(list(excluded_statuses)),
            )
            .update(values, synchronize_session=False)
        )
        new_status = next((v for k, v in values.items() if k is models.Booking.status), None)
        if changed and new_status is not None:
            log_status_change("Booking", booking_id, previous_status, new_status)
        return changed


booking = CRUDBooking()
