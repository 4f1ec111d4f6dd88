"""Login, logout and the bearer-token gate."""

from types import SimpleNamespace

import pytest

from gallery_api import auth as auth_mod
from gallery_api import models
from gallery_api.admin_auth import authenticate, role_at_least, verify_password
from gallery_api.auth import TokenIssuer
from gallery_api.errors import AuthFailure, Forbidden
from gallery_api.models import Role
from gallery_api.security import require_role

from conftest import ADMIN_PASSWORD, ADMIN_USERNAME


class TestLogin:
    def test_login_returns_token_and_public_user(self, client, admin):
        r = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["data"]["token"].count(".") == 2
        assert body["data"]["user"] == {"id": admin.id, "username": ADMIN_USERNAME, "role": "admin"}
        assert "password" not in r.text

    def test_username_is_case_normalized(self, client, admin):
        r = client.post("/api/auth/login", json={"username": ADMIN_USERNAME.upper(), "password": ADMIN_PASSWORD})
        assert r.status_code == 200

    def test_unknown_user_and_wrong_password_look_identical(self, client, admin):
        wrong_pw = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": "nope-nope"})
        no_user = client.post("/api/auth/login", json={"username": "ghost_user", "password": "nope-nope"})
        assert wrong_pw.status_code == no_user.status_code == 401
        assert wrong_pw.json() == no_user.json() == {"success": False, "message": "Invalid credentials"}

    def test_login_validation_errors_are_field_level(self, client):
        r = client.post("/api/auth/login", json={"username": "a!", "password": "123"})
        assert r.status_code == 400
        body = r.json()
        assert body["message"] == "Validation failed"
        fields = {e["field"] for e in body["errors"]}
        assert {"username", "password"} <= fields

    def test_password_hash_is_salted_bcrypt(self, admin):
        assert admin.password_hash.startswith("$2")
        assert ADMIN_PASSWORD not in admin.password_hash
        assert verify_password(ADMIN_PASSWORD, admin.password_hash)
        assert not verify_password("wrong", admin.password_hash)

    def test_authenticate_raises_generic_failure(self, db, admin):
        with pytest.raises(AuthFailure):
            authenticate(db, "nobody", ADMIN_PASSWORD)
        with pytest.raises(AuthFailure):
            authenticate(db, ADMIN_USERNAME, "bad-password")
        assert authenticate(db, f"  {ADMIN_USERNAME.upper()} ", ADMIN_PASSWORD).id == admin.id

    def test_login_is_audited(self, client, db, admin):
        client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        ev = db.query(models.AuditEvent).filter(models.AuditEvent.event_type == "admin_login").one()
        assert ev.admin_user_id == admin.id
        assert ADMIN_PASSWORD not in (ev.payload_json or "")


class TestGate:
    def test_protected_route_accepts_fresh_token(self, client, auth_headers):
        r = client.get("/api/auth/me", headers=auth_headers)
        assert r.status_code == 200
        assert r.json()["data"]["username"] == ADMIN_USERNAME

    def test_missing_token(self, client):
        r = client.get("/api/auth/me")
        assert r.status_code == 401
        assert r.json()["message"] == "Not authorized, no token provided"

    def test_non_bearer_scheme_is_missing_token(self, client, token):
        r = client.get("/api/auth/me", headers={"Authorization": f"Basic {token}"})
        assert r.status_code == 401
        assert "no token" in r.json()["message"]

    def test_garbage_token_is_invalid(self, client):
        r = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid token"

    def test_token_signed_with_other_secret_is_invalid(self, client, admin):
        forged = TokenIssuer("some-other-secret", 60).issue(admin.id, admin.username, "admin")
        r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid token"

    def test_expired_token_is_reported_as_expired(self, client, app, admin, monkeypatch):
        issuer: TokenIssuer = app.state.tokens
        with monkeypatch.context() as m:
            m.setattr(auth_mod.time, "time", lambda: 1_000_000.0)
            old = issuer.issue(admin.id, admin.username, "admin")
        r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {old}"})
        assert r.status_code == 401
        assert r.json()["message"] == "Token expired"

    def test_deleted_principal_is_rejected(self, client, db, admin, auth_headers):
        db.delete(db.get(models.AdminUser, admin.id))
        db.commit()
        r = client.get("/api/auth/me", headers=auth_headers)
        assert r.status_code == 401
        assert r.json()["message"] == "Admin not found"

    def test_require_role_rejects_lower_rank(self):
        dep = require_role(Role.ADMIN)
        with pytest.raises(Forbidden):
            dep(admin=SimpleNamespace(role="viewer"))
        assert dep(admin=SimpleNamespace(role=Role.ADMIN)).role == Role.ADMIN

    def test_role_rank(self):
        assert role_at_least(Role.ADMIN, Role.ADMIN)
        assert role_at_least("admin", "admin")
        assert not role_at_least("viewer", Role.ADMIN)


class TestLogout:
    def test_logout_revokes_unexpired_token(self, client, auth_headers):
        assert client.get("/api/auth/me", headers=auth_headers).status_code == 200

        r = client.post("/api/auth/logout", headers=auth_headers)
        assert r.status_code == 200
        assert r.json() == {"success": True, "message": "Logout successful"}

        r = client.get("/api/auth/me", headers=auth_headers)
        assert r.status_code == 401
        assert r.json()["message"] == "Token has been revoked. Please login again."

    def test_logout_twice_is_idempotent(self, client, db, auth_headers):
        assert client.post("/api/auth/logout", headers=auth_headers).status_code == 200
        assert client.post("/api/auth/logout", headers=auth_headers).status_code == 200
        assert db.query(models.RevokedToken).count() == 1
        assert db.query(models.AuditEvent).filter(models.AuditEvent.event_type == "admin_logout").count() == 1

    def test_logout_requires_token(self, client):
        assert client.post("/api/auth/logout").status_code == 401

    def test_new_login_after_logout_gets_working_token(self, client, auth_headers):
        client.post("/api/auth/logout", headers=auth_headers)
        r = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        fresh = r.json()["data"]["token"]
        assert f"Bearer {fresh}" != auth_headers["Authorization"]
        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {fresh}"}).status_code == 200

    def test_revoked_token_cannot_upload(self, client, auth_headers):
        client.post("/api/auth/logout", headers=auth_headers)
        r = client.post("/api/gallery/upload", headers=auth_headers, data={"category": "photos"})
        assert r.status_code == 401
