"""
Shared pytest fixtures for the gallery API tests.

Every test gets its own app built from an explicit Settings object:
- a fresh sqlite database under tmp_path
- a local upload dir under tmp_path
- a random JWT secret
- rate limiting and the revocation sweeper disabled
"""

import os
import secrets
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from gallery_api import models
from gallery_api.admin_auth import create_admin
from gallery_api.config import Settings
from gallery_api.main import create_app

ADMIN_USERNAME = "admin_user"
ADMIN_PASSWORD = "correct-horse-battery"

# smallest payload that passes the magic-byte sniff
PNG_HEADER = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR"


def png_bytes(size: int = 256) -> bytes:
    return PNG_HEADER + b"\x00" * max(0, size - len(PNG_HEADER))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        ENV="test",
        DATABASE_URL=f"sqlite:///{tmp_path / 'gallery.db'}",
        JWT_SECRET=secrets.token_urlsafe(32),
        JWT_EXPIRE_MIN=60,
        BCRYPT_ROUNDS=4,
        STORAGE_BACKEND="local",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        PUBLIC_BASE_URL="http://testserver",
        RATE_LIMIT_ENABLED=False,
        REVOCATION_SWEEP_SECONDS=0,
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)
    app.state.db.create_all()
    yield app
    app.state.db.dispose()


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def db(app):
    session = app.state.db.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin(db, settings) -> models.AdminUser:
    return create_admin(db, username=ADMIN_USERNAME, password=ADMIN_PASSWORD, rounds=settings.BCRYPT_ROUNDS)


@pytest.fixture
def token(client, admin) -> str:
    r = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.text
    return r.json()["data"]["token"]


@pytest.fixture
def auth_headers(token) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def upload_dir(settings):
    return os.path.join(settings.UPLOAD_DIR, "gallery")


def add_items(db, category: models.Category, count: int, *, url_prefix: str = "https://cdn.example.com/x"):
    """Insert rows directly with strictly increasing created_at."""
    base = models.utcnow() - timedelta(hours=1)
    rows = []
    for i in range(count):
        ts = base + timedelta(seconds=i)
        row = models.GalleryItem(
            id=models.new_item_id(),
            url=f"{url_prefix}/{category.value}-{i}.jpg",
            title=f"{category.value} {i}",
            category=category,
            created_at=ts,
            updated_at=ts,
        )
        db.add(row)
        rows.append(row)
    db.commit()
    return rows
