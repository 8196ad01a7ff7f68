from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from .base import BaseModel, utcnow


class JobAssignment(BaseModel):
    """Audit row written each time an admin assigns a technician to a booking."""

    __tablename__ = "job_assignments"

    id             = Column(Integer, primary_key=True, index=True)
    booking_id     = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    technician_id  = Column(Integer, ForeignKey("technician_profiles.user_id"), nullable=False)
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    notes          = Column(Text, nullable=True)
    assigned_at    = Column(DateTime, nullable=False, default=utcnow)

    booking = relationship("Booking", back_populates="assignments")
    technician = relationship("TechnicianProfile")
