from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ..core.config import settings
from ..models.booking_status import BookingStatus
from ..models.payment import PaymentMethod, PaymentStatus
from .base import CamelModel, Envelope
from .user import PersonSummary


# ─── Request bodies ────────────────────────────────────────────────────────────

class CancelBookingRequest(CamelModel):
    reason: Optional[str] = None


class CompleteBookingRequest(CamelModel):
    payment_received: bool = False


class AdminBookingStatusUpdate(CamelModel):
    booking_id: int
    # Kept as a plain string so unknown literals reach the service and are
    # rejected with the uniform validation error.
    status: str
    technician_id: Optional[int] = None
    notes: Optional[str] = None


class AssignTechnicianRequest(CamelModel):
    technician_id: int
    notes: Optional[str] = None


class StartJobRequest(CamelModel):
    notes: Optional[str] = None


# ─── Nested pieces ─────────────────────────────────────────────────────────────

class ServiceSummary(CamelModel):
    id: int
    name: str
    category: Optional[str] = None


class PricingOptionSummary(CamelModel):
    id: int
    name: str
    price: Decimal
    duration: Optional[int] = None


class TechnicianSummary(CamelModel):
    id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    rating: float = 0
    review_count: int = 0
    completed_jobs: int = 0

    @classmethod
    def from_profile(cls, profile) -> "TechnicianSummary":
        user = profile.user
        return cls(
            id=profile.user_id,
            name=user.name if user else None,
            phone=user.phone if user else None,
            rating=profile.rating or 0,
            review_count=profile.review_count or 0,
            completed_jobs=profile.completed_jobs or 0,
        )


class PaymentResponse(CamelModel):
    id: int
    # Money fields are Decimal and go over the wire as strings, e.g. "25.000"
    amount: Decimal
    currency: str = Field(default_factory=lambda: settings.DEFAULT_CURRENCY)
    method: PaymentMethod
    status: PaymentStatus
    paid_at: Optional[datetime] = None


class BookingReviewSummary(CamelModel):
    id: int
    overall_rating: int
    comment: Optional[str] = None
    published: bool
    created_at: Optional[datetime] = None


# ─── Responses ─────────────────────────────────────────────────────────────────

class CancelledBooking(CamelModel):
    id: int
    booking_number: str
    status: BookingStatus
    scheduled_date: datetime
    service: ServiceSummary


class CancelBookingResponse(Envelope):
    booking: CancelledBooking


class CompletedBooking(CamelModel):
    id: int
    status: BookingStatus
    completed_at: Optional[datetime] = None
    final_price: Optional[Decimal] = None


class CompleteBookingResponse(Envelope):
    booking: CompletedBooking
    payment: Optional[PaymentResponse] = None


class BookingDetail(CamelModel):
    id: int
    booking_number: str
    status: BookingStatus
    scheduled_date: datetime
    time_slot: Optional[str] = None
    estimated_price: Optional[Decimal] = None
    final_price: Optional[Decimal] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    service: Optional[ServiceSummary] = None
    pricing_option: Optional[PricingOptionSummary] = None
    client: Optional[PersonSummary] = None
    technician: Optional[TechnicianSummary] = None
    payment: Optional[PaymentResponse] = None
    review: Optional[BookingReviewSummary] = None


class BookingDetailResponse(Envelope):
    booking: BookingDetail


class BookingListResponse(Envelope):
    bookings: List[BookingDetail]


class JobListResponse(Envelope):
    jobs: List[BookingDetail]


class JobResponse(Envelope):
    job: BookingDetail


class BookingStats(CamelModel):
    pending: int
    assigned: int
    completed: int
    total_revenue: Decimal
    total_bookings: int


class AdminBookingListResponse(Envelope):
    bookings: List[BookingDetail]
    stats: BookingStats


class JobAssignmentResponse(CamelModel):
    id: int
    assigned_at: datetime
    notes: Optional[str] = None


class AssignTechnicianResponse(Envelope):
    booking: BookingDetail
    job_assignment: JobAssignmentResponse


def booking_detail(booking) -> BookingDetail:
    """Flatten a loaded ``Booking`` and its relationships into the wire shape."""
    return BookingDetail(
        id=booking.id,
        booking_number=booking.booking_number,
        status=booking.status,
        scheduled_date=booking.scheduled_date,
        time_slot=booking.time_slot,
        estimated_price=booking.estimated_price,
        final_price=booking.final_price,
        completed_at=booking.completed_at,
        notes=booking.notes,
        internal_notes=booking.internal_notes,
        created_at=booking.created_at,
        service=ServiceSummary.model_validate(booking.service) if booking.service else None,
        pricing_option=(
            PricingOptionSummary.model_validate(booking.pricing_option)
            if booking.pricing_option
            else None
        ),
        client=PersonSummary.model_validate(booking.client) if booking.client else None,
        technician=TechnicianSummary.from_profile(booking.technician) if booking.technician else None,
        payment=PaymentResponse.model_validate(booking.payment) if booking.payment else None,
        review=BookingReviewSummary.model_validate(booking.review) if booking.review else None,
    )
