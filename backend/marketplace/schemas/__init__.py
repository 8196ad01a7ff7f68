from .base import CamelModel, Envelope
from .user import LoginRequest, UserResponse, PersonSummary, TokenResponse
from .booking import (
    CancelBookingRequest,
    CompleteBookingRequest,
    AdminBookingStatusUpdate,
    AssignTechnicianRequest,
    StartJobRequest,
    CancelBookingResponse,
    CompleteBookingResponse,
    BookingDetail,
    booking_detail,
    BookingDetailResponse,
    BookingListResponse,
    JobListResponse,
    JobResponse,
    BookingStats,
    AdminBookingListResponse,
    AssignTechnicianResponse,
)
from .review import (
    ReviewCreate,
    PublicReviewCreate,
    ReviewModeration,
    ReviewResponse,
    ReviewDetails,
    review_details,
    ReviewSubmitResponse,
    ReviewDetailResponse,
    ReviewStats,
    ReviewListResponse,
)
from .technician import (
    TechnicianActionRequest,
    BulkTechnicianActionRequest,
    TechnicianDetail,
    TechnicianListResponse,
    TechnicianActionResponse,
    BulkTechnicianActionResponse,
    TechnicianPerformanceResponse,
    TechnicianHistoryResponse,
)
