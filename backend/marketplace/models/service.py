from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Service(BaseModel):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    category = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    pricing_options = relationship(
        "PricingOption",
        back_populates="service",
        cascade="all, delete-orphan",
    )
    bookings = relationship("Booking", back_populates="service")


class PricingOption(BaseModel):
    __tablename__ = "pricing_options"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 3), nullable=False)
    duration = Column(Integer, nullable=True)  # minutes

    service = relationship("Service", back_populates="pricing_options")
