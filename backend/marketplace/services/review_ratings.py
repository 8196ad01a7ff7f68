"""Review submission, moderation and technician rating aggregation."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud, models
from ..core.config import settings
from ..core.exceptions import (
    Conflict,
    Forbidden,
    InternalError,
    NotFound,
    ValidationFailed,
)
from ..core.identity import CallerIdentity
from ..database import atomic
from ..models.booking_status import BookingStatus
from ..schemas.review import ReviewBase

logger = logging.getLogger(__name__)

SUB_RATING_FIELDS = (
    "quality_rating",
    "timeliness_rating",
    "communication_rating",
    "value_rating",
)
MODERATION_ACTIONS = ("approve", "deny")
DEFAULT_APPROVE_NOTES = "Approved for publication"
DEFAULT_DENY_NOTES = "Rejected by admin"

_TENTH = Decimal("0.1")


def round_rating(ratings: Sequence[int]) -> Decimal:
    """Arithmetic mean rounded half-up to one decimal place."""
    if not ratings:
        return Decimal("0.0")
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return mean.quantize(_TENTH, rounding=ROUND_HALF_UP)


def recompute_technician_rating(db: Session, technician_id: int) -> Decimal:
    """Rating from every review of the technician's bookings, read fresh."""
    return round_rating(crud.review.overall_ratings_for_technician(db, technician_id))


def _check_rating(value, field: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationFailed(
            f"{field.replace('_', ' ').capitalize()} must be between 1 and 5",
            {field: "out_of_range"},
        )
    return value


def _validate_ratings(review_in: ReviewBase) -> dict:
    overall = review_in.overall_rating
    if overall is None or isinstance(overall, bool) or not 1 <= overall <= 5:
        raise ValidationFailed(
            "Valid overall rating (1-5) is required",
            {"overall_rating": "required"},
        )
    ratings = {"overall_rating": overall}
    for field in SUB_RATING_FIELDS:
        ratings[field] = _check_rating(getattr(review_in, field), field)
    return ratings


def _create_review(
    db: Session,
    booking: models.Booking,
    client_id: int,
    review_in: ReviewBase,
    ratings: dict,
    published: bool,
    photos: Sequence[str] = (),
) -> models.Review:
    """Insert the review and refresh the technician's aggregate as one unit.

    A second review for the same booking is stopped by the unique constraint
    on ``reviews.booking_id`` and reported as a conflict.
    """
    technician_id = booking.technician_id
    review = models.Review(
        booking_id=booking.id,
        client_id=client_id,
        comment=review_in.comment,
        positives=review_in.positives,
        improvements=review_in.improvements,
        photos=list(photos),
        published=published,
        verified_job=True,
        **ratings,
    )
    try:
        with atomic(db):
            db.add(review)
            db.flush()
            if technician_id is not None:
                rating = recompute_technician_rating(db, technician_id)
                crud.technician.apply_new_review(db, technician_id, rating)
    except IntegrityError:
        logger.warning("Duplicate review rejected for booking %s", booking.id)
        raise Conflict("Review already exists for this booking")
    except SQLAlchemyError:
        logger.exception("Review creation failed for booking %s", booking.id)
        raise InternalError("Failed to submit review. Please try again.")

    db.refresh(review)
    return review


def submit_customer_review(
    db: Session,
    booking_id: int,
    caller: CallerIdentity,
    review_in: ReviewBase,
) -> models.Review:
    """Review written by the signed-in customer. Published immediately."""
    if not caller.is_client:
        raise Forbidden("Customer access required")
    ratings = _validate_ratings(review_in)

    booking = crud.booking.get_completed_booking_for_client(db, booking_id, caller.id)
    if booking is None:
        raise NotFound("Booking not found or not eligible for review")

    return _create_review(db, booking, caller.id, review_in, ratings, published=True)


def submit_public_review(
    db: Session,
    booking_id: Optional[int],
    review_in: ReviewBase,
    photos: Sequence[str] = (),
) -> models.Review:
    """Review sent through the public form. Held unpublished until an admin approves it."""
    if not booking_id:
        raise ValidationFailed(
            "Booking ID and overall rating are required",
            {"booking_id": "required"},
        )
    ratings = _validate_ratings(review_in)

    # The public form has no session; the review belongs to the booking's client
    booking = crud.booking.get_booking(db, booking_id)
    if booking is None or booking.status != BookingStatus.COMPLETED:
        raise NotFound("Booking not found or not eligible for review")

    return _create_review(
        db, booking, booking.client_id, review_in, ratings, published=False, photos=photos
    )


def moderate_review(
    db: Session,
    caller: CallerIdentity,
    review_id: Optional[int],
    action: Optional[str],
    notes: Optional[str] = None,
) -> models.Review:
    if not caller.is_admin:
        raise Forbidden("Access denied. Admin privileges required.")
    if not review_id or not action:
        raise ValidationFailed("Review ID and action are required")
    if action not in MODERATION_ACTIONS:
        raise ValidationFailed("Invalid action", {"action": "invalid"})

    review = crud.review.get_review(db, review_id)
    if review is None:
        raise NotFound("Review not found")

    approve = action == "approve"
    try:
        with atomic(db):
            review.published = approve
            review.moderation_notes = notes or (DEFAULT_APPROVE_NOTES if approve else DEFAULT_DENY_NOTES)
            db.add(review)
    except SQLAlchemyError:
        logger.exception("Review moderation failed for review %s", review_id)
        raise InternalError("Failed to moderate review")

    logger.info("Review %s %sd by admin %s", review_id, action, caller.id)
    return crud.review.get_review(db, review_id)


def list_published_reviews(
    db: Session,
    service_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> Tuple[List[models.Review], Optional[dict]]:
    """Newest published reviews, plus rating averages when scoped to a service."""
    if limit is None:
        limit = settings.PUBLIC_REVIEWS_DEFAULT_LIMIT
    limit = max(1, min(limit, settings.PUBLIC_REVIEWS_MAX_LIMIT))

    reviews = crud.review.get_published_reviews(db, service_id=service_id, limit=limit)
    stats = None
    if service_id is not None:
        overall, quality, timeliness, communication, value, count = (
            crud.review.published_stats_for_service(db, service_id)
        )
        stats = {
            "average_overall": overall,
            "average_quality": quality,
            "average_timeliness": timeliness,
            "average_communication": communication,
            "average_value": value,
            "count": count or 0,
        }
    return reviews, stats


def list_reviews_for_admin(db: Session, caller: CallerIdentity) -> List[models.Review]:
    if not caller.is_admin:
        raise Forbidden("Access denied. Admin privileges required.")
    return crud.review.get_all_reviews(db)
