"""Request-id and logging middleware."""

import uuid
import time
import logging

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("rolekit")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Add a unique request ID to every request/response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        response: Response = await call_next(request)

        duration = round((time.time() - start_time) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration)

        logger.info(
            "%s %s %s %sms",
            request.method,
            request.url.path,
            response.status_code,
            duration,
        )
        return response


def expects_json(request: Request) -> bool:
    """True for XHR requests or when the Accept header asks for JSON."""
    if request.headers.get("X-Requested-With", "").lower() == "xmlhttprequest":
        return True
    return "json" in request.headers.get("Accept", "").lower()


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application."""
    # Request ID + timing
    app.add_middleware(RequestIdMiddleware)
