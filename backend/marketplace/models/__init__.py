from .user import User, UserRole
from .technician_profile import TechnicianProfile, TechnicianStatus
from .service import Service, PricingOption
from .booking import Booking
from .booking_status import BookingStatus
from .payment import Payment, PaymentMethod, PaymentStatus
from .review import Review
from .job_assignment import JobAssignment

__all__ = [
    "User",
    "UserRole",
    "TechnicianProfile",
    "TechnicianStatus",
    "Service",
    "PricingOption",
    "Booking",
    "BookingStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "Review",
    "JobAssignment",
]
