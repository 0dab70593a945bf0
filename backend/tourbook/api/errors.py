"""
Exception handlers translating domain errors into HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from tourbook.core.exceptions import InvalidInputError, TourBookingError
from tourbook.core.logging import get_logger

logger = get_logger(__name__)


async def domain_error_handler(request: Request, exc: TourBookingError) -> JSONResponse:
    content = {"detail": exc.message}
    if isinstance(exc, InvalidInputError) and exc.field:
        content["field"] = exc.field

    if exc.status_code >= 500:
        logger.error("domain_error", error=type(exc).__name__, detail=exc.message)
    else:
        logger.info("domain_error", error=type(exc).__name__, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("database_error", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database unavailable. Please try again."},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server error"},
    )


EXCEPTION_HANDLERS = {
    TourBookingError: domain_error_handler,
    SQLAlchemyError: database_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
