"""Domain errors raised by the booking and review services.

Each error carries the HTTP status it maps to and a message that is safe to
show the caller. ``main.py`` turns them into ``{"success": false, "message": ...}``.
"""

from typing import Dict, Optional

from fastapi import status


class MarketplaceError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors or {}


class Unauthenticated(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailed(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidState(MarketplaceError):
    """The operation is not permitted for the booking's current status."""

    status_code = status.HTTP_400_BAD_REQUEST


class TooLate(MarketplaceError):
    """The cancellation window has already closed."""

    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT


class InternalError(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
