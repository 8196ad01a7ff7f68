from datetime import datetime
from typing import List, Optional

from .base import CamelModel, Envelope
from .booking import ServiceSummary, TechnicianSummary


class ReviewBase(CamelModel):
    # Range checks live in the review service so every entry point shares them
    overall_rating: Optional[int] = None
    quality_rating: Optional[int] = None
    timeliness_rating: Optional[int] = None
    communication_rating: Optional[int] = None
    value_rating: Optional[int] = None
    comment: Optional[str] = None
    positives: Optional[str] = None
    improvements: Optional[str] = None


class ReviewCreate(ReviewBase):
    """Customer → technician review payload (booking-bound)."""
    pass


class PublicReviewCreate(ReviewBase):
    """Public submission; always starts unpublished."""

    booking_id: Optional[int] = None
    photos: List[str] = []


class ReviewModeration(CamelModel):
    review_id: Optional[int] = None
    action: Optional[str] = None
    notes: Optional[str] = None


class ReviewResponse(CamelModel):
    id: int
    booking_id: int
    overall_rating: int
    quality_rating: Optional[int] = None
    timeliness_rating: Optional[int] = None
    communication_rating: Optional[int] = None
    value_rating: Optional[int] = None
    comment: Optional[str] = None
    positives: Optional[str] = None
    improvements: Optional[str] = None
    photos: List[str] = []
    published: bool
    moderation_notes: Optional[str] = None
    created_at: Optional[datetime] = None


class ReviewBookingContext(CamelModel):
    id: int
    booking_number: str
    service: Optional[ServiceSummary] = None
    technician: Optional[TechnicianSummary] = None


class ReviewDetails(ReviewResponse):
    """Review plus the booking/service/technician it belongs to."""

    booking: Optional[ReviewBookingContext] = None


class ReviewSubmitResponse(Envelope):
    review: ReviewResponse


class ReviewDetailResponse(Envelope):
    review: ReviewDetails


class ReviewStats(CamelModel):
    average_overall: Optional[float] = None
    average_quality: Optional[float] = None
    average_timeliness: Optional[float] = None
    average_communication: Optional[float] = None
    average_value: Optional[float] = None
    count: int = 0


class ReviewListResponse(Envelope):
    reviews: List[ReviewDetails]
    stats: Optional[ReviewStats] = None


def review_details(review) -> ReviewDetails:
    """Attach the booking/service/technician context to a review."""
    base = ReviewResponse.model_validate(review)
    booking = review.booking
    context = None
    if booking is not None:
        context = ReviewBookingContext(
            id=booking.id,
            booking_number=booking.booking_number,
            service=ServiceSummary.model_validate(booking.service) if booking.service else None,
            technician=(
                TechnicianSummary.from_profile(booking.technician)
                if booking.technician
                else None
            ),
        )
    return ReviewDetails(**base.model_dump(), booking=context)
