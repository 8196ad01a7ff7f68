from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from typing import Optional

from ..core.identity import CallerIdentity
from ..database import get_db
from ..schemas.booking import (
    BookingDetailResponse,
    BookingListResponse,
    CancelBookingRequest,
    CancelBookingResponse,
    CancelledBooking,
    CompleteBookingRequest,
    CompleteBookingResponse,
    CompletedBooking,
    JobListResponse,
    JobResponse,
    PaymentResponse,
    StartJobRequest,
    booking_detail,
)
from ..schemas.technician import (
    TechnicianHistoryResponse,
    TechnicianHistoryStats,
    TechnicianPerformance,
    TechnicianPerformanceResponse,
)
from ..services import booking_lifecycle, technicians
from .dependencies import (
    get_current_identity,
    require_client,
    require_technician,
    require_technician_or_admin,
)

router = APIRouter(tags=["bookings"])


@router.post("/bookings/{booking_id}/cancel", response_model=CancelBookingResponse)
def cancel_booking(
    *,
    db: Session = Depends(get_db),
    booking_id: int = Path(..., title="The ID of the booking to cancel"),
    cancel_in: Optional[CancelBookingRequest] = None,
    caller: CallerIdentity = Depends(get_current_identity),
) -> CancelBookingResponse:
    """Cancel a booking.

    Open to the client who made the booking, the assigned technician and
    admins. Non-admins must cancel before the cancellation window closes.
    """
    reason = cancel_in.reason if cancel_in else None
    booking = booking_lifecycle.cancel_booking(db, booking_id, caller, reason=reason)
    return CancelBookingResponse(
        message="Booking cancelled successfully",
        booking=CancelledBooking.model_validate(booking),
    )


@router.post("/bookings/{booking_id}/complete", response_model=CompleteBookingResponse)
def complete_booking(
    *,
    db: Session = Depends(get_db),
    booking_id: int = Path(..., title="The ID of the booking to complete"),
    complete_in: Optional[CompleteBookingRequest] = None,
    caller: CallerIdentity = Depends(require_technician_or_admin),
) -> CompleteBookingResponse:
    payment_received = complete_in.payment_received if complete_in else False
    booking, payment = booking_lifecycle.complete_booking(
        db, booking_id, caller, payment_received=payment_received
    )
    message = (
        "Booking completed and cash payment recorded"
        if payment is not None
        else "Booking marked as completed"
    )
    return CompleteBookingResponse(
        message=message,
        booking=CompletedBooking.model_validate(booking),
        payment=PaymentResponse.model_validate(payment) if payment is not None else None,
    )


# ─── Customer views ────────────────────────────────────────────────────────────

@router.get("/customer/bookings", response_model=BookingListResponse)
def read_my_bookings(
    *,
    db: Session = Depends(get_db),
    status_filter: Optional[str] = Query(None, alias="status"),
    caller: CallerIdentity = Depends(require_client),
) -> BookingListResponse:
    """List the caller's bookings. ``status`` accepts ``upcoming``, ``past`` or a booking status."""
    bookings = booking_lifecycle.list_client_bookings(db, caller, status_filter=status_filter)
    return BookingListResponse(bookings=[booking_detail(b) for b in bookings])


@router.get("/customer/bookings/{booking_id}", response_model=BookingDetailResponse)
def read_my_booking(
    *,
    db: Session = Depends(get_db),
    booking_id: int = Path(..., title="The ID of the booking"),
    caller: CallerIdentity = Depends(require_client),
) -> BookingDetailResponse:
    booking = booking_lifecycle.get_client_booking(db, booking_id, caller)
    return BookingDetailResponse(booking=booking_detail(booking))


# ─── Technician views ──────────────────────────────────────────────────────────

@router.get("/technician/jobs", response_model=JobListResponse)
def read_my_jobs(
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_technician),
) -> JobListResponse:
    jobs = booking_lifecycle.list_technician_jobs(db, caller)
    return JobListResponse(jobs=[booking_detail(job) for job in jobs])


@router.patch("/technician/jobs/{booking_id}/start", response_model=JobResponse)
def start_job(
    *,
    db: Session = Depends(get_db),
    booking_id: int = Path(..., title="The ID of the assigned booking"),
    start_in: Optional[StartJobRequest] = None,
    caller: CallerIdentity = Depends(require_technician),
) -> JobResponse:
    notes = start_in.notes if start_in else None
    job = booking_lifecycle.start_job(db, booking_id, caller, notes=notes)
    return JobResponse(message="Job started", job=booking_detail(job))


@router.get("/technician/stats", response_model=TechnicianPerformanceResponse)
def read_my_performance(
    *,
    db: Session = Depends(get_db),
    month: Optional[int] = Query(None, description="Calendar month, 1-12"),
    year: Optional[int] = Query(None),
    caller: CallerIdentity = Depends(require_technician),
) -> TechnicianPerformanceResponse:
    stats = technicians.technician_performance(db, caller, month=month, year=year)
    return TechnicianPerformanceResponse(stats=TechnicianPerformance(**stats))


@router.get("/technician/history", response_model=TechnicianHistoryResponse)
def read_my_history(
    *,
    db: Session = Depends(get_db),
    limit: Optional[int] = Query(None),
    caller: CallerIdentity = Depends(require_technician),
) -> TechnicianHistoryResponse:
    jobs, stats = technicians.technician_history(db, caller, limit=limit)
    return TechnicianHistoryResponse(
        jobs=[booking_detail(job) for job in jobs],
        stats=TechnicianHistoryStats(**stats),
    )
