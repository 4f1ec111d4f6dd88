# services/api/gallery_api/models.py

import enum
import secrets
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Integer, Text, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base

def utcnow() -> datetime:
    # naive UTC, matches the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)

def new_item_id() -> str:
    return secrets.token_hex(12)


class Role(str, enum.Enum):
    ADMIN = "admin"


class Category(str, enum.Enum):
    STUDENT_WORK = "studentWork"
    PROGRAMS = "programs"
    PHOTOS = "photos"
    VIDEOS = "videos"


IMAGE_CATEGORIES = (Category.STUDENT_WORK, Category.PROGRAMS, Category.PHOTOS)

# --------------------------
# Admin principals + revocation ledger
# --------------------------

class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # always stored trimmed + lower-cased
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String)

    role: Mapped[Role] = mapped_column(
        Enum(Role, name="admin_role", values_callable=lambda e: [m.value for m in e]),
        default=Role.ADMIN,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # sha256 of the bearer token; raw tokens are never stored
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    # equals the token's own exp (or now+24h if undecodable); purged after this
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

# --------------------------
# Gallery
# --------------------------

class GalleryItem(Base):
    __tablename__ = "gallery_items"
    __table_args__ = (Index("ix_gallery_items_category_created_at", "category", "created_at"),)

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_item_id)
    url: Mapped[str] = mapped_column(String(2048))

    # remote storage object reference (s3 key); None for local files and external links
    storage_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    category: Mapped[Category] = mapped_column(
        Enum(Category, name="gallery_category", values_callable=lambda e: [m.value for m in e]),
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    event_type: Mapped[str] = mapped_column(String, index=True)

    admin_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    request_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    client_ip: Mapped[str | None] = mapped_column(String, nullable=True)
    path: Mapped[str | None] = mapped_column(String, nullable=True)
    method: Mapped[str | None] = mapped_column(String, nullable=True)

    payload_json: Mapped[str | None] = mapped_column(Text, nullable=True)
