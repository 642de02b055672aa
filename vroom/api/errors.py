"""
Application-wide error handlers.

Route handlers raise HTTPException for expected failures; these handlers map
the remaining cases so that every error reaches the client as JSON.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


def format_validation_errors(errors: list[dict]) -> str:
    """Flatten pydantic errors into 'field: reason' pairs."""
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return ", ".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or malformed request fields are client errors (400)."""
    message = format_validation_errors(exc.errors())
    log.info(f"[Errors] Validation failed on {request.method} {request.url.path}: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message}
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything a handler did not map itself becomes a generic 500."""
    log.exception(f"[Errors] Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
