from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel
from .types import CaseInsensitiveEnum


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    BENEFIT_PAY = "BENEFIT_PAY"
    BANK_TRANSFER = "BANK_TRANSFER"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Payment(BaseModel):
    __tablename__ = "payments"

    id         = Column(Integer, primary_key=True, index=True)
    # One payment per booking
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)
    amount     = Column(Numeric(10, 3), nullable=False)
    method     = Column(CaseInsensitiveEnum(PaymentMethod, name="paymentmethod"), nullable=False)
    status     = Column(
        CaseInsensitiveEnum(PaymentStatus, name="paymentstatus"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    paid_at    = Column(DateTime, nullable=True)

    booking = relationship("Booking", back_populates="payment")
