"""
Translate reservation errors into HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.exceptions import ReservationError, SeatConflictError, StorageError
from app.core.logging import get_logger

logger = get_logger(__name__)


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    content = {"detail": exc.message, "error": type(exc).__name__}
    headers = None

    if isinstance(exc, SeatConflictError):
        content["seats"] = exc.seat_labels
    if isinstance(exc, StorageError):
        headers = {"Retry-After": "1"}
        logger.error("reservation_failed", error=exc.message, status_code=exc.status_code)
    else:
        logger.info("reservation_rejected", error=type(exc).__name__, detail=exc.message)

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


EXCEPTION_HANDLERS = {
    ReservationError: reservation_error_handler,
    Exception: unhandled_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
