from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship
from .base import BaseModel
from .types import CaseInsensitiveEnum
from ..core.exceptions import ValidationFailed
import enum


class UserRole(str, enum.Enum):
    """Enumeration of all supported user roles."""

    CLIENT = "CLIENT"
    TECHNICIAN = "TECHNICIAN"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: object) -> "UserRole":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValidationFailed("Invalid role", {"role": "invalid"})


class User(BaseModel):
    __tablename__ = "users"

    id        = Column(Integer, primary_key=True, index=True)
    email     = Column(String, unique=True, index=True, nullable=False)
    password  = Column(String, nullable=False)
    name      = Column(String, nullable=False)
    phone     = Column(String, nullable=True)
    role      = Column(CaseInsensitiveEnum(UserRole, name="userrole"), nullable=False, default=UserRole.CLIENT)
    is_active = Column(Boolean, default=True)

    # If this user is a technician, they get exactly one profile here
    technician_profile = relationship(
        "TechnicianProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    # All bookings where this user is the client
    bookings_as_client = relationship(
        "Booking",
        foreign_keys="Booking.client_id",
        back_populates="client",
    )
