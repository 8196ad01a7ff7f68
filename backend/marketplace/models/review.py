from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, Text
from sqlalchemy.orm import relationship
from .base import BaseModel

class Review(BaseModel):
    __tablename__ = "reviews"

    id         = Column(Integer, primary_key=True, index=True)
    # At most one review per booking
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)
    client_id  = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    overall_rating       = Column(Integer, nullable=False)
    quality_rating       = Column(Integer, nullable=True)
    timeliness_rating    = Column(Integer, nullable=True)
    communication_rating = Column(Integer, nullable=True)
    value_rating         = Column(Integer, nullable=True)

    comment      = Column(Text, nullable=True)
    positives    = Column(Text, nullable=True)
    improvements = Column(Text, nullable=True)
    photos       = Column(JSON, nullable=False, default=list)

    published        = Column(Boolean, nullable=False, default=False)
    verified_job     = Column(Boolean, nullable=False, default=True)
    moderation_notes = Column(Text, nullable=True)
    helpful          = Column(Integer, nullable=False, default=0)

    # Each Review is attached to exactly one Booking
    booking = relationship("Booking", back_populates="review")
    client  = relationship("User")
