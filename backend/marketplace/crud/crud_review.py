from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from .. import models


def _with_context(query):
    return query.options(
        selectinload(models.Review.booking).selectinload(models.Booking.service),
        selectinload(models.Review.booking)
        .selectinload(models.Booking.technician)
        .selectinload(models.TechnicianProfile.user),
    )


class CRUDReview:
    def get_review(self, db: Session, review_id: int) -> Optional[models.Review]:
        return _with_context(db.query(models.Review)).filter(models.Review.id == review_id).first()

    def get_all_reviews(self, db: Session) -> List[models.Review]:
        return (
            _with_context(db.query(models.Review))
            .order_by(models.Review.created_at.desc(), models.Review.id.desc())
            .all()
        )

    def get_published_reviews(
        self, db: Session, service_id: Optional[int] = None, limit: int = 10
    ) -> List[models.Review]:
        query = _with_context(db.query(models.Review)).filter(models.Review.published.is_(True))
        if service_id is not None:
            query = query.join(models.Booking, models.Review.booking_id == models.Booking.id).filter(
                models.Booking.service_id == service_id
            )
        return (
            query.order_by(models.Review.created_at.desc(), models.Review.id.desc())
            .limit(limit)
            .all()
        )

    def published_stats_for_service(self, db: Session, service_id: int):
        """Return one row of averaged ratings and the review count for a service."""
        return (
            db.query(
                func.avg(models.Review.overall_rating),
                func.avg(models.Review.quality_rating),
                func.avg(models.Review.timeliness_rating),
                func.avg(models.Review.communication_rating),
                func.avg(models.Review.value_rating),
                func.count(models.Review.id),
            )
            .join(models.Booking, models.Review.booking_id == models.Booking.id)
            .filter(models.Review.published.is_(True), models.Booking.service_id == service_id)
            .one()
        )

    def overall_ratings_for_technician(self, db: Session, technician_id: int) -> List[int]:
        rows = (
            db.query(models.Review.overall_rating)
            .join(models.Booking, models.Review.booking_id == models.Booking.id)
            .filter(models.Booking.technician_id == technician_id)
            .all()
        )
        return [row[0] for row in rows]

    def average_rating_for_technician_between(self, db: Session, technician_id: int, start, end):
        """Mean overall rating for the technician's jobs completed in ``[start, end)``."""
        return (
            db.query(func.avg(models.Review.overall_rating))
            .join(models.Booking, models.Review.booking_id == models.Booking.id)
            .filter(
                models.Booking.technician_id == technician_id,
                models.Booking.completed_at >= start,
                models.Booking.completed_at < end,
            )
            .scalar()
        )


review = CRUDReview()
