from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.transitions import InvalidTransition


def _field_errors(exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        # Drop the 'body'/'query' prefix so clients get the bare field path
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc) or None,
            "message": err.get("msg", "Invalid value"),
        })
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation failed on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": _field_errors(exc)},
    )


async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning(
        f"Integrity violation on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Resource conflicts with existing data."},
    )


async def transition_exception_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    detail = "An unexpected error occurred while processing your request."
    if settings.debug:
        detail = f"{detail} ({exc})"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(InvalidTransition, transition_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
