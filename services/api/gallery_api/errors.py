# services/api/gallery_api/errors.py

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings

LOG = logging.getLogger("gallery")

# --------------------------
# Error taxonomy
# --------------------------

class ApiError(HTTPException):
    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: str | None = None, *, errors: list[dict] | None = None, headers: dict | None = None):
        super().__init__(self.status_code, message or self.message, headers=headers)
        self.errors = errors


class AuthFailure(ApiError):
    # same response for unknown user and wrong password
    status_code = 401
    message = "Invalid credentials"


class TokenInvalid(ApiError):
    status_code = 401
    message = "Invalid token"


class TokenExpired(ApiError):
    status_code = 401
    message = "Token expired"


class Unauthorized(ApiError):
    status_code = 401
    message = "Not authorized"


class Forbidden(ApiError):
    status_code = 403
    message = "Access denied. Admin only."


class NotFound(ApiError):
    status_code = 404
    message = "Resource not found"


class ValidationFailure(ApiError):
    status_code = 400
    message = "Validation failed"


class DuplicateKey(ApiError):
    status_code = 400
    message = "Duplicate field value entered"


class UploadRejected(ApiError):
    status_code = 400
    message = "File upload error"


class PayloadTooLarge(ApiError):
    status_code = 413
    message = "Request body too large"


class RateLimited(ApiError):
    status_code = 429
    message = "Too many requests. Try again later."


class UpstreamStorageFailure(ApiError):
    # provider details stay in the log; clients see the generic 500
    status_code = 500
    message = "Internal Server Error"

# --------------------------
# Handlers
# --------------------------

def error_body(message: str, *, errors: list[dict] | None = None, stack: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if stack:
        body["stack"] = stack
    return body


def _field_name(loc: tuple) -> str:
    # drop the "body"/"query"/"path" prefix FastAPI adds
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path", "header", "form"):
        parts = parts[1:]
    return ".".join(parts)


def install_error_handlers(app: FastAPI, settings: Settings):
    show_stack = not settings.is_production

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and not isinstance(exc, ApiError):
            message = f"Not Found - {request.url.path}"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message, errors=getattr(exc, "errors", None)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = [{"field": _field_name(tuple(e.get("loc", ()))), "message": e.get("msg", "invalid")} for e in exc.errors()]
        return JSONResponse(status_code=400, content=error_body(ValidationFailure.message, errors=errors))

    @app.exception_handler(IntegrityError)
    async def integrity_error(request: Request, exc: IntegrityError):
        LOG.warning("integrity_error path=%s", request.url.path)
        return JSONResponse(status_code=400, content=error_body(DuplicateKey.message))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        LOG.exception("unhandled_error path=%s", request.url.path)
        stack = "".join(traceback.format_exception(exc)) if show_stack else None
        return JSONResponse(status_code=500, content=error_body("Internal Server Error", stack=stack))
