# services/api/gallery_api/auth.py

import base64
import hashlib
import hmac
import json
import secrets
import time
from typing import Optional

from .config import Settings
from .errors import TokenExpired, TokenInvalid

_HEADER = {"alg": "HS256", "typ": "JWT"}
_REQUIRED_CLAIMS = ("sub", "username", "role", "iat", "exp")

def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")

def _b64url_decode(s: str) -> bytes:
    pad = "=" * ((4 - (len(s) % 4)) % 4)
    return base64.urlsafe_b64decode((s + pad).encode("ascii"))

def _split(token: str) -> tuple[str, str, str]:
    parts = (token or "").split(".")
    if len(parts) != 3 or not all(parts):
        raise TokenInvalid()
    return parts[0], parts[1], parts[2]

def _decode_segment(seg: str) -> dict:
    try:
        out = json.loads(_b64url_decode(seg))
    except Exception:
        raise TokenInvalid()
    if not isinstance(out, dict):
        raise TokenInvalid()
    return out


class TokenIssuer:
    """
    Compact HS256 JWTs: {sub, username, role, iat, exp, jti}.
    Secret and lifetime come from Settings and are fixed for the process.
    """

    def __init__(self, secret: str, ttl_min: int):
        if not secret:
            raise ValueError("jwt_secret_blank")
        self._key = secret.encode("utf-8")
        self.ttl_min = max(1, int(ttl_min))

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(settings.JWT_SECRET, settings.JWT_EXPIRE_MIN)

    def _sign(self, msg: bytes) -> str:
        return _b64url(hmac.new(self._key, msg, hashlib.sha256).digest())

    def issue(self, principal_id: int, username: str, role: str) -> str:
        now = int(time.time())
        payload = {
            "sub": str(principal_id),
            "username": username,
            "role": role,
            "iat": now,
            "exp": now + self.ttl_min * 60,
            "jti": secrets.token_hex(8),
        }
        h = _b64url(json.dumps(_HEADER, separators=(",", ":")).encode("utf-8"))
        p = _b64url(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        sig = self._sign(f"{h}.{p}".encode("ascii"))
        return f"{h}.{p}.{sig}"

    def verify(self, token: str) -> dict:
        h, p, sig = _split(token)

        header = _decode_segment(h)
        if header.get("alg") != "HS256":
            raise TokenInvalid()

        try:
            expected = self._sign(f"{h}.{p}".encode("ascii"))
        except UnicodeEncodeError:
            raise TokenInvalid()
        if not hmac.compare_digest(expected, sig):
            raise TokenInvalid()

        payload = _decode_segment(p)
        if any(k not in payload for k in _REQUIRED_CLAIMS):
            raise TokenInvalid()

        try:
            exp = int(payload["exp"])
        except (TypeError, ValueError):
            raise TokenInvalid()
        if exp <= int(time.time()):
            raise TokenExpired()

        return payload

    @staticmethod
    def decode_unverified(token: str) -> Optional[dict]:
        """Claims without checking signature or expiry. Only for revocation bookkeeping."""
        try:
            _h, p, _sig = _split(token)
            return _decode_segment(p)
        except TokenInvalid:
            return None


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None

def token_fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
