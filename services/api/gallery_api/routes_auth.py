# services/api/gallery_api/routes_auth.py

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session as OrmSession

from . import models, revocation
from .admin_auth import authenticate
from .audit import log_audit
from .db import get_db
from .schemas import LoginData, LoginReq, LoginResp, MeResp, MessageResp, PublicUser
from .security import get_admin_for_logout, get_current_admin, rate_limit

router = APIRouter(prefix="/api/auth", tags=["auth"])

def _public_user(u: models.AdminUser) -> PublicUser:
    return PublicUser(id=u.id, username=u.username, role=u.role)

@router.post("/login", response_model=LoginResp, dependencies=[Depends(rate_limit("login", "LOGIN_RATE_LIMIT"))])
def login(payload: LoginReq, request: Request, db: OrmSession = Depends(get_db)):
    u = authenticate(db, payload.username, payload.password)

    token = request.app.state.tokens.issue(u.id, u.username, models.Role(u.role).value)
    u.last_login_at = models.utcnow()

    log_audit(db, event_type="admin_login", request=request, admin_user_id=u.id, payload={})
    db.commit()

    return LoginResp(data=LoginData(token=token, user=_public_user(u)))

@router.post("/logout", response_model=MessageResp)
def logout(
    request: Request,
    admin: models.AdminUser = Depends(get_admin_for_logout),
    db: OrmSession = Depends(get_db),
):
    if revocation.add(db, request.state.token):
        log_audit(db, event_type="admin_logout", request=request, payload={})
        db.commit()
    return MessageResp(message="Logout successful")

@router.get("/me", response_model=MeResp)
def me(admin: models.AdminUser = Depends(get_current_admin)):
    return MeResp(data=_public_user(admin))
