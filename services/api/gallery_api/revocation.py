# services/api/gallery_api/revocation.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as OrmSession

from . import models
from .auth import TokenIssuer, token_fingerprint

DEFAULT_WINDOW = timedelta(hours=24)

def entry_expiry(token: str, now: datetime | None = None) -> datetime:
    """
    Ledger expiry for a token: its own exp claim, or now+24h when the claims
    can't be read. Never later than max(exp, now+24h).
    """
    now = now or models.utcnow()
    claims = TokenIssuer.decode_unverified(token)
    exp = claims.get("exp") if claims else None
    try:
        return datetime.fromtimestamp(int(exp), tz=timezone.utc).replace(tzinfo=None)
    except (TypeError, ValueError, OverflowError, OSError):
        return now + DEFAULT_WINDOW

def add(db: OrmSession, token: str) -> bool:
    """
    Revoke a token. Idempotent: returns False if it was already in the ledger.
    """
    fp = token_fingerprint(token)
    if db.query(models.RevokedToken.id).filter(models.RevokedToken.token_hash == fp).first():
        return False

    db.add(models.RevokedToken(token_hash=fp, expires_at=entry_expiry(token), created_at=models.utcnow()))
    try:
        db.commit()
    except IntegrityError:
        # concurrent logout with the same token won the insert
        db.rollback()
        return False
    return True

def is_revoked(db: OrmSession, token: str) -> bool:
    fp = token_fingerprint(token)
    return db.query(models.RevokedToken.id).filter(models.RevokedToken.token_hash == fp).first() is not None

def purge_expired(db: OrmSession, now: datetime | None = None) -> int:
    now = now or models.utcnow()
    n = (
        db.query(models.RevokedToken)
        .filter(models.RevokedToken.expires_at <= now)
        .delete(synchronize_session=False)
    )
    db.commit()
    return int(n or 0)
