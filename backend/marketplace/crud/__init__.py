from .crud_user import user
from .crud_technician import technician
from .crud_booking import booking
from .crud_review import review

# Usage: `crud.booking.get_booking(db, booking_id)`
