# services/api/gallery_api/security.py

import logging
import time

from fastapi import Depends, Request
from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session as OrmSession
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from . import models, revocation
from .admin_auth import role_at_least
from .auth import extract_bearer
from .config import Settings
from .db import get_db
from .errors import Forbidden, PayloadTooLarge, RateLimited, Unauthorized, error_body
from .models import Role

LOG = logging.getLogger("gallery")

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

# --------------------------
# Auth gate
# --------------------------

def authenticate_request(request: Request, db: OrmSession, *, allow_revoked: bool = False) -> models.AdminUser:
    """
    no token -> revoked -> invalid/expired -> unknown principal -> ok.
    On success the admin and raw token are attached to request.state.
    """
    token = extract_bearer(request.headers.get("authorization"))
    if not token:
        raise Unauthorized("Not authorized, no token provided")

    if not allow_revoked and revocation.is_revoked(db, token):
        raise Unauthorized("Token has been revoked. Please login again.")

    # TokenInvalid / TokenExpired propagate with their own messages
    claims = request.app.state.tokens.verify(token)

    try:
        admin_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise Unauthorized("Invalid token")

    u = db.get(models.AdminUser, admin_id)
    if u is None:
        raise Unauthorized("Admin not found")

    request.state.admin_user = u
    request.state.token = token
    return u

def get_current_admin(request: Request, db: OrmSession = Depends(get_db)) -> models.AdminUser:
    return authenticate_request(request, db)

def get_admin_for_logout(request: Request, db: OrmSession = Depends(get_db)) -> models.AdminUser:
    # logging out an already revoked token is a no-op, not an error
    return authenticate_request(request, db, allow_revoked=True)

def require_role(required_role: Role):
    """
    FastAPI dependency factory:
      - authenticates the bearer token (get_current_admin)
      - checks role rank against required_role
    """
    def dep(admin: models.AdminUser = Depends(get_current_admin)) -> models.AdminUser:
        if not role_at_least(admin.role, required_role):
            raise Forbidden()
        return admin
    return dep

require_admin = require_role(Role.ADMIN)

# --------------------------
# Rate limiting (fixed window in redis)
# --------------------------

_LUA_INCR_EXPIRE = """
local current = redis.call("INCR", KEYS[1])
if current == 1 then
  redis.call("EXPIRE", KEYS[1], tonumber(ARGV[1]))
end
return current
"""

class RateLimiter:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._redis: Redis | None = None

    def _client(self) -> Redis:
        if self._redis is None:
            self._redis = Redis.from_url(self.settings.REDIS_URL, decode_responses=True, socket_connect_timeout=1)
        return self._redis

    def allow(self, bucket_name: str, client_key: str, limit: int) -> bool:
        if not self.settings.RATE_LIMIT_ENABLED:
            return True
        window_sec = int(self.settings.RATE_LIMIT_WINDOW_SEC)
        bucket = int(time.time() // window_sec)
        key = f"rl:{bucket_name}:{client_key}:{bucket}"
        try:
            count = int(self._client().eval(_LUA_INCR_EXPIRE, 1, key, window_sec))
            return count <= int(limit)
        except RedisError:
            LOG.warning("rate_limit_unavailable bucket=%s", bucket_name)
            return bool(self.settings.RATE_LIMIT_FAIL_OPEN)

    def close(self):
        if self._redis is not None:
            self._redis.close()
            self._redis = None

def rate_limit(bucket_name: str, limit_setting: str):
    """Dependency factory; limit_setting names the Settings field holding the per-window limit."""
    def dep(request: Request):
        settings = get_settings(request)
        client = request.client.host if request.client else "unknown"
        limiter: RateLimiter = request.app.state.rate_limiter
        if not limiter.allow(bucket_name, client, int(getattr(settings, limit_setting))):
            raise RateLimited()
        return True
    return dep

# --------------------------
# Body size
# --------------------------

class BodySizeLimitMiddleware:
    """
    Caps JSON bodies at MAX_JSON_BODY_MB. A declared Content-Length is checked
    before the app runs; chunked bodies are counted as they stream in.
    Multipart uploads are capped per file by the upload route instead.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = int(max_bytes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if not headers.get("content-type", "").startswith("application/json"):
            await self.app(scope, receive, send)
            return

        length = headers.get("content-length")
        if length:
            try:
                too_big = int(length) > self.max_bytes
            except ValueError:
                too_big = False
            if too_big:
                response = JSONResponse(status_code=PayloadTooLarge.status_code, content=error_body(PayloadTooLarge.message))
                await response(scope, receive, send)
                return

        received = 0

        async def capped_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    # raised while the route reads its body, so the error handlers render it
                    raise PayloadTooLarge()
            return message

        await self.app(scope, capped_receive, send)
