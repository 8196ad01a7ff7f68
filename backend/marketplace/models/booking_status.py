import enum

from ..core.exceptions import ValidationFailed


class BookingStatus(str, enum.Enum):
    """Central booking status enumeration used across the application."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"

    @classmethod
    def parse(cls, value: object) -> "BookingStatus":
        """Return the member for ``value`` or raise ``ValidationFailed``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValidationFailed("Invalid status", {"status": "invalid"})


# Statuses from which no guarded operation may move a booking.
TERMINAL_STATUSES = (BookingStatus.COMPLETED, BookingStatus.CANCELLED)

# Complete must also refuse bookings that were refunded after completion.
NOT_COMPLETABLE_STATUSES = TERMINAL_STATUSES + (BookingStatus.REFUNDED,)
