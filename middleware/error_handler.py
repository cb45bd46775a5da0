from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import AppException
from middleware.request_id import get_request_id
from utils.logger import get_logger, sanitize_log_data

logger = get_logger(__name__)


def error_response(status_code: int, message: str, errors: dict | None = None, headers: dict | None = None) -> JSONResponse:
    """
    The one error envelope: {"error": message, "errors"?: {field: [messages]}}.
    """
    content = {"error": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.errors, exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Turns pydantic's error list into per-field messages with status 400.
    loc is a tuple like ("body", "email"); the "body" prefix is dropped.
    """
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = error.get("loc", ())
        field = ".".join(str(part) for part in loc if part != "body") or "body"
        message = error.get("msg", "Invalid value")
        # Custom validators surface as "Value error, <message>"
        message = message.removeprefix("Value error, ")
        errors.setdefault(field, []).append(message)

    logger.info(
        "Request validation failed",
        extra={
            "path": request.url.path,
            "fields": sorted(errors),
            "body": sanitize_log_data(exc.body) if isinstance(exc.body, dict) else None
        }
    )
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised errors (unknown route, wrong method)."""
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all: full detail goes to the log, the client gets a generic message.
    """
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "request_id": get_request_id(request)
        },
        exc_info=True
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
