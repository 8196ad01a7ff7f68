# backend/marketplace/main.py

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import api_admin, api_booking, api_review, auth
from .core.config import settings
from .core.exceptions import MarketplaceError
from .core.observability import setup_logging
from .utils.errors import error_response
from .utils.status_logger import register_status_listeners

# Configure logging before creating any loggers
setup_logging()
logger = logging.getLogger(__name__)

register_status_listeners()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    default_response_class=ORJSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", settings.CORS_ORIGINS)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Turn anything unhandled into the uniform 500 body and log the traceback."""
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("Unhandled error at %s: %s", request.url.path, exc)
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal Server Error"},
        )


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return error_response(exc.message, exc.status_code, exc.field_errors, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings share the 400 validation shape."""
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    field_errors = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field_errors[".".join(loc) or "request"] = err.get("type", "invalid")
    return error_response("Invalid request", status.HTTP_400_BAD_REQUEST, field_errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


@app.get("/healthz", tags=["health"])
async def healthz():
    return {"status": "ok"}


api_prefix = settings.API_V1_STR  # usually something like "/api/v1"

# ─── AUTH ROUTES (no version prefix) ───────────────────────────────────────────
app.include_router(auth.router, prefix="/auth")

app.include_router(api_booking.router, prefix=f"{api_prefix}")
app.include_router(api_review.router, prefix=f"{api_prefix}")
app.include_router(api_admin.router, prefix=f"{api_prefix}")
