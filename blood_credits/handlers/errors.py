import logging

from aiohttp import web
from pydantic import ValidationError

from blood_credits.exceptions import (
    ConcurrentUpdateError,
    DonationTooSoonError,
    DuplicateEventError,
    ProfileDecodeError,
    ProfileStoreError,
    StoreTimeoutError,
)

logger = logging.getLogger(__name__)

# most specific first: the store errors share one base class
_ERROR_STATUS: list[tuple[type[Exception], int, str]] = [
    (DuplicateEventError, 409, "duplicate_event"),
    (ConcurrentUpdateError, 409, "concurrent_update"),
    (StoreTimeoutError, 503, "store_timeout"),
    (ProfileStoreError, 500, "store_error"),
    (ProfileDecodeError, 500, "profile_decode_error"),
    (DonationTooSoonError, 422, "donation_too_soon"),
    (ValidationError, 400, "validation_error"),
    (ValueError, 400, "bad_request"),
]


def error_response(status: int, code: str, detail: str) -> web.Response:
    return web.json_response({"error": code, "detail": detail}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """
    Turns raised errors into JSON responses and logs them.
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as exc:
        for exc_type, status, code in _ERROR_STATUS:
            if isinstance(exc, exc_type):
                log = logger.error if status >= 500 else logger.info
                log("%s %s -> %d %s: %s", request.method, request.path, status, code, exc)
                return error_response(status, code, str(exc))
        logger.exception("Cause an exception: %s, on request: %s %s", exc, request.method, request.path)
        return error_response(500, "internal_error", "internal server error")
