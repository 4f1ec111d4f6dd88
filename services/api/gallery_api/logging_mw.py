# services/api/gallery_api/logging_mw.py

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

LOG = logging.getLogger("gallery.http")

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "x-api-key"})
LOGGED_HEADERS = ("user-agent", "content-type", "content-length", "origin", "referer")
_REQUEST_FIELDS = ("request_id", "method", "path", "status", "duration_ms")

SLOW_REQUEST_MS = 2000


def request_headers_for_log(request: Request) -> dict:
    """A short allow-list of headers; credentials are masked, long values clipped."""
    out = {}
    for name in LOGGED_HEADERS:
        value = request.headers.get(name)
        if value is not None:
            out[name] = value[:200]
    for name in SENSITIVE_HEADERS:
        if name in request.headers:
            out[name] = "[REDACTED]"
    return out


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request, tagged with X-Request-Id (taken from the client
    or generated). Bodies are never logged: they carry passwords and uploads.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        rid = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        request.state.request_id = rid
        started = time.perf_counter()

        status = 500
        try:
            response: Response = await call_next(request)
            status = response.status_code
        finally:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            admin = getattr(request.state, "admin_user", None)

            # static media hits are noisy; keep them at debug
            if request.url.path.startswith("/uploads/") and status < 400:
                level = logging.DEBUG
            elif status >= 500 or elapsed_ms >= SLOW_REQUEST_MS:
                level = logging.WARNING
            else:
                level = logging.INFO

            LOG.log(
                level,
                "request",
                extra={
                    "request_id": rid,
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "duration_ms": elapsed_ms,
                    "admin_id": getattr(admin, "id", None),
                    "client": request.client.host if request.client else None,
                    "headers": request_headers_for_log(request),
                },
            )

        response.headers["X-Request-Id"] = rid
        return response


class _RequestFieldDefaults(logging.Filter):
    # records from outside the middleware lack the request fields the format expects
    def filter(self, record: logging.LogRecord) -> bool:
        for f in _REQUEST_FIELDS:
            if not hasattr(record, f):
                setattr(record, f, "-")
        return True


def configure_logging(level: int = logging.INFO):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s | %(request_id)s %(method)s %(path)s %(status)s %(duration_ms)s",
    )
    for h in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestFieldDefaults) for f in h.filters):
            h.addFilter(_RequestFieldDefaults())
