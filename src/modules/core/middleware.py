import time
import uuid
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

logger = structlog.get_logger()


class RequestContextMiddleware:
    """Binds per-request logging context and times the request.

    Reads the X-Request-ID header from the incoming request, or generates
    a UUID4 when absent.  The ID is bound into structlog's contextvars so
    every log line of the request carries it, and it is echoed back via
    the X-Request-ID response header.
    ``request_finished`` reports ``duration_ms``.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        started = time.monotonic()
        cid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        logger.info(
            "request_started",
            method=request.method,
            path=request.get_full_path(),
        )

        response = self.get_response(request)

        logger.info(
            "request_finished",
            method=request.method,
            path=request.get_full_path(),
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )

        response["X-Request-ID"] = cid
        return response
