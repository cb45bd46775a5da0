"""
Request ID middleware for tracking requests across the application.

Every log record emitted while a request is being served carries its ID,
so all lines of one login, refresh or extraction can be correlated.
"""

import uuid
import logging
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


REQUEST_ID_HEADER = "X-Request-ID"

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIDLogFilter(logging.Filter):
    """Stamps the current request ID onto every record passing a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Adds a unique request ID to each request.

    1. Use the client-provided X-Request-ID header, or generate a UUID
    2. Store it in request.state and in a context variable for logging
    3. Echo it back in the response headers
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        request.state.request_id = request_id
        token = _request_id.set(request_id)

        try:
            response: Response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            _request_id.reset(token)


def get_request_id(request: Request) -> str:
    """
    Request ID from request state, or "no-request-id" outside the middleware.
    """
    return getattr(request.state, "request_id", "no-request-id")
