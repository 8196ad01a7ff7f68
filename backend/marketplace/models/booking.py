# backend/marketplace/models/booking.py

from sqlalchemy import Column, Integer, DateTime, Numeric, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel
from .booking_status import BookingStatus
from .types import CaseInsensitiveEnum

class Booking(BaseModel):
    __tablename__ = "bookings"

    id                = Column(Integer, primary_key=True, index=True)
    booking_number    = Column(String, unique=True, nullable=False, index=True)
    client_id         = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    technician_id     = Column(Integer, ForeignKey("technician_profiles.user_id"), nullable=True, index=True)
    service_id        = Column(Integer, ForeignKey("services.id"), nullable=False)
    pricing_option_id = Column(Integer, ForeignKey("pricing_options.id"), nullable=True)
    status            = Column(
        CaseInsensitiveEnum(BookingStatus, name="bookingstatus"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    scheduled_date    = Column(DateTime, nullable=False, index=True)
    time_slot         = Column(String, nullable=True)
    estimated_price   = Column(Numeric(10, 3), nullable=True)
    final_price       = Column(Numeric(10, 3), nullable=True)
    completed_at      = Column(DateTime, nullable=True)
    internal_notes    = Column(Text, nullable=True)
    notes             = Column(Text, nullable=True)

    # Relationships
    client         = relationship("User", foreign_keys=[client_id], back_populates="bookings_as_client")
    technician     = relationship("TechnicianProfile", back_populates="bookings")
    service        = relationship("Service", back_populates="bookings")
    pricing_option = relationship("PricingOption")
    payment        = relationship("Payment", back_populates="booking", uselist=False)
    review         = relationship("Review", back_populates="booking", uselist=False)
    assignments    = relationship(
        "JobAssignment",
        back_populates="booking",
        order_by="JobAssignment.id",
    )
