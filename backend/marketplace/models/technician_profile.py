from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, Numeric, Text
from sqlalchemy.orm import relationship
import enum

from ..core.exceptions import ValidationFailed
from .base import BaseModel
from .types import CaseInsensitiveEnum


class TechnicianStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"

    @classmethod
    def parse(cls, value: object) -> "TechnicianStatus":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValidationFailed("Invalid technician status", {"status": "invalid"})


class TechnicianProfile(BaseModel):
    """ORM model representing a technician's public profile and counters."""

    __tablename__ = "technician_profiles"

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        unique=True,
        nullable=False,
        index=True,
    )
    status = Column(
        CaseInsensitiveEnum(TechnicianStatus, name="technicianstatus"),
        nullable=False,
        default=TechnicianStatus.PENDING,
    )
    specialties = Column(JSON, nullable=True)
    # Mean overall rating across every review of this technician's bookings
    rating = Column(Numeric(3, 1), nullable=False, default=0)
    review_count = Column(Integer, nullable=False, default=0)
    completed_jobs = Column(Integer, nullable=False, default=0)
    # Set once an admin has approved the application
    verified = Column(Boolean, nullable=False, default=False)
    internal_notes = Column(Text, nullable=True)

    user = relationship("User", back_populates="technician_profile")
    bookings = relationship("Booking", back_populates="technician")
