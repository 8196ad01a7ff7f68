"""Admin console routes: booking oversight, technician management and review moderation."""

import logging
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.identity import CallerIdentity
from ..database import get_db
from ..schemas.booking import (
    AdminBookingListResponse,
    AdminBookingStatusUpdate,
    AssignTechnicianRequest,
    AssignTechnicianResponse,
    BookingDetailResponse,
    BookingStats,
    JobAssignmentResponse,
    booking_detail,
)
from ..schemas.review import (
    ReviewDetailResponse,
    ReviewListResponse,
    ReviewModeration,
    review_details,
)
from ..schemas.technician import (
    BulkTechnicianActionRequest,
    BulkTechnicianActionResponse,
    TechnicianActionRequest,
    TechnicianActionResponse,
    TechnicianDetail,
    TechnicianListResponse,
    TechnicianListStats,
)
from ..services import booking_lifecycle, review_ratings, technicians
from .dependencies import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

MODERATION_PAST_TENSE = {"approve": "approved", "deny": "denied"}


@router.get("/bookings", response_model=AdminBookingListResponse)
def list_bookings(
    *,
    db: Session = Depends(get_db),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50),
    admin: CallerIdentity = Depends(require_admin),
) -> AdminBookingListResponse:
    bookings, stats = booking_lifecycle.list_bookings_for_admin(
        db, admin, status_filter=status_filter, limit=limit
    )
    return AdminBookingListResponse(
        bookings=[booking_detail(b) for b in bookings],
        stats=BookingStats(**stats),
    )


@router.patch("/bookings", response_model=BookingDetailResponse)
def update_booking_status(
    *,
    db: Session = Depends(get_db),
    update_in: AdminBookingStatusUpdate,
    admin: CallerIdentity = Depends(require_admin),
) -> BookingDetailResponse:
    """Force a booking into any status. Bypasses the normal transition checks."""
    booking = booking_lifecycle.override_booking_status(
        db,
        update_in.booking_id,
        admin,
        update_in.status,
        technician_id=update_in.technician_id,
        notes=update_in.notes,
    )
    return BookingDetailResponse(
        message="Booking updated successfully",
        booking=booking_detail(booking),
    )


@router.post("/bookings/{booking_id}/assign", response_model=AssignTechnicianResponse)
def assign_technician(
    *,
    db: Session = Depends(get_db),
    booking_id: int = Path(..., title="The ID of the booking to assign"),
    assign_in: AssignTechnicianRequest,
    admin: CallerIdentity = Depends(require_admin),
) -> AssignTechnicianResponse:
    booking, assignment = booking_lifecycle.assign_technician(
        db, booking_id, admin, assign_in.technician_id, notes=assign_in.notes
    )
    return AssignTechnicianResponse(
        message="Technician assigned successfully",
        booking=booking_detail(booking),
        job_assignment=JobAssignmentResponse.model_validate(assignment),
    )


@router.get("/reviews", response_model=ReviewListResponse)
def list_reviews(
    db: Session = Depends(get_db),
    admin: CallerIdentity = Depends(require_admin),
) -> ReviewListResponse:
    reviews = review_ratings.list_reviews_for_admin(db, admin)
    return ReviewListResponse(reviews=[review_details(r) for r in reviews])


@router.patch("/reviews", response_model=ReviewDetailResponse)
def moderate_review(
    *,
    db: Session = Depends(get_db),
    moderation_in: ReviewModeration,
    admin: CallerIdentity = Depends(require_admin),
) -> ReviewDetailResponse:
    review = review_ratings.moderate_review(
        db,
        admin,
        moderation_in.review_id,
        moderation_in.action,
        notes=moderation_in.notes,
    )
    return ReviewDetailResponse(
        message=f"Review {MODERATION_PAST_TENSE[moderation_in.action]} successfully",
        review=review_details(review),
    )


@router.get("/technicians", response_model=TechnicianListResponse)
def list_technicians(
    *,
    db: Session = Depends(get_db),
    status_filter: Optional[str] = Query(None, alias="status"),
    specialty: List[str] = Query([]),
    admin: CallerIdentity = Depends(require_admin),
) -> TechnicianListResponse:
    """Technicians with optional status and specialty filters.

    ``specialty`` may repeat; a technician matches if they offer any of them.
    """
    profiles, stats = technicians.list_technicians_for_admin(
        db, admin, status_filter=status_filter, specialties=specialty
    )
    return TechnicianListResponse(
        technicians=[TechnicianDetail.from_profile(p) for p in profiles],
        stats=TechnicianListStats(**stats),
    )


@router.post("/technicians", response_model=TechnicianActionResponse)
def manage_technician(
    *,
    db: Session = Depends(get_db),
    action_in: TechnicianActionRequest,
    admin: CallerIdentity = Depends(require_admin),
) -> TechnicianActionResponse:
    profile, verb = technicians.manage_technician(
        db,
        admin,
        action_in.technician_id,
        action_in.action,
        reason=action_in.reason,
    )
    return TechnicianActionResponse(
        message=f"Technician {verb} successfully",
        technician=TechnicianDetail.from_profile(profile),
    )


@router.patch("/technicians", response_model=BulkTechnicianActionResponse)
def bulk_update_technicians(
    *,
    db: Session = Depends(get_db),
    bulk_in: BulkTechnicianActionRequest,
    admin: CallerIdentity = Depends(require_admin),
) -> BulkTechnicianActionResponse:
    count, verb = technicians.bulk_update_technicians(
        db, admin, bulk_in.action, bulk_in.technician_ids
    )
    return BulkTechnicianActionResponse(
        message=f"{count} technicians {verb} successfully",
        count=count,
    )
