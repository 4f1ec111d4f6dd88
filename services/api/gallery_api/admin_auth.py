# services/api/gallery_api/admin_auth.py

from __future__ import annotations

from passlib.context import CryptContext
from sqlalchemy.orm import Session as OrmSession

from . import models
from .errors import AuthFailure, DuplicateKey
from .models import Role

ROLE_ORDER = {Role.ADMIN: 100}

DEFAULT_ROUNDS = 10

def make_password_context(rounds: int = DEFAULT_ROUNDS) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=int(rounds))

pwd = make_password_context()

# verified against when the username is unknown so both failure paths cost one bcrypt check
_DUMMY_HASH = pwd.hash("not-a-real-password")

def normalize_username(username: str) -> str:
    return (username or "").strip().lower()

def hash_password(pw: str, ctx: CryptContext | None = None) -> str:
    if not pw:
        raise ValueError("password_blank")
    return (ctx or pwd).hash(pw)

def verify_password(pw: str, pw_hash: str) -> bool:
    if not pw or not pw_hash:
        return False
    try:
        return pwd.verify(pw, pw_hash)
    except Exception:
        return False

def role_at_least(user_role: Role | str, required: Role | str) -> bool:
    try:
        have = ROLE_ORDER.get(Role(user_role), -1)
        need = ROLE_ORDER.get(Role(required), 999)
    except ValueError:
        return False
    return have >= need

def get_admin_by_username(db: OrmSession, username: str) -> models.AdminUser | None:
    u = normalize_username(username)
    if not u:
        return None
    return db.query(models.AdminUser).filter(models.AdminUser.username == u).first()

def authenticate(db: OrmSession, username: str, password: str) -> models.AdminUser:
    """
    Returns the admin for valid credentials, else raises AuthFailure.
    Unknown user and wrong password are indistinguishable to the caller.
    """
    u = get_admin_by_username(db, username)
    if u is None:
        verify_password(password, _DUMMY_HASH)
        raise AuthFailure()
    if not verify_password(password, u.password_hash):
        raise AuthFailure()
    return u

def create_admin(
    db: OrmSession,
    *,
    username: str,
    password: str,
    role: Role = Role.ADMIN,
    rounds: int = DEFAULT_ROUNDS,
) -> models.AdminUser:
    u = normalize_username(username)
    if not u:
        raise ValueError("username_blank")
    if get_admin_by_username(db, u) is not None:
        raise DuplicateKey()

    admin = models.AdminUser(
        username=u,
        password_hash=hash_password(password, make_password_context(rounds)),
        role=Role(role),
        created_at=models.utcnow(),
    )
    db.add(admin)
    db.commit()
    return admin
