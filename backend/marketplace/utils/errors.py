from typing import Dict, Optional
from fastapi import status
from fastapi.responses import ORJSONResponse
import logging

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    code: int = status.HTTP_400_BAD_REQUEST,
    field_errors: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> ORJSONResponse:
    """Return the uniform ``{success: false, message}`` body and log it."""
    if code >= 500:
        logger.error("%s %s", message, field_errors or {})
    else:
        logger.warning("%s %s", message, field_errors or {})
    content = {"success": False, "message": message}
    if field_errors:
        content["fieldErrors"] = field_errors
    return ORJSONResponse(status_code=code, content=content, headers=headers)
