# services/api/gallery_api/gallery.py

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import desc, func, or_
from sqlalchemy.orm import Session as OrmSession

from . import models
from .errors import NotFound, UpstreamStorageFailure
from .image_safety import check_category, validate_upload
from .models import Category
from .storage import Storage, StorageError

LOG = logging.getLogger("gallery.gallery")

def serialize_item(item: models.GalleryItem, *, with_updated: bool = False) -> Dict[str, Any]:
    out = {
        "id": item.id,
        "url": item.url,
        "title": item.title or None,
        "category": Category(item.category).value,
        "createdAt": item.created_at.isoformat() if item.created_at else None,
    }
    if with_updated:
        out["updatedAt"] = item.updated_at.isoformat() if item.updated_at else None
    return out

def binary_in_use(db: OrmSession, *, url: str, reference: Optional[str]) -> bool:
    """True while any live item still points at this url or provider reference."""
    cond = models.GalleryItem.url == url
    if reference:
        cond = or_(cond, models.GalleryItem.storage_ref == reference)
    return db.query(models.GalleryItem.id).filter(cond).first() is not None

def release_binary(db: OrmSession, storage: Storage, *, url: str, reference: Optional[str], reason: str) -> bool:
    """
    Best-effort delete of a binary once no item references it. Never raises.
    Call after the metadata change is committed.
    """
    if not storage.owns(url=url, reference=reference):
        return False
    if binary_in_use(db, url=url, reference=reference):
        LOG.info("binary_kept reason=%s url=%s still referenced", reason, url)
        return False
    try:
        ok = storage.delete(url=url, reference=reference)
    except Exception:
        LOG.exception("binary_cleanup_failed reason=%s url=%s", reason, url)
        return False
    if not ok:
        LOG.warning("binary_cleanup_failed reason=%s url=%s", reason, url)
    return ok

def get_item_or_404(db: OrmSession, item_id: str) -> models.GalleryItem:
    item = db.get(models.GalleryItem, (item_id or "").lower())
    if item is None:
        raise NotFound("Gallery item not found")
    return item

# --------------------------
# Read
# --------------------------

def list_items(
    db: OrmSession,
    *,
    category: Category | None,
    page: int,
    limit: int,
) -> tuple[Dict[str, List[dict]], Dict[str, int]]:
    q = db.query(models.GalleryItem)
    if category is not None:
        q = q.filter(models.GalleryItem.category == category)

    total = int(q.with_entities(func.count(models.GalleryItem.id)).scalar() or 0)
    rows = (
        q.order_by(desc(models.GalleryItem.created_at), desc(models.GalleryItem.id))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    grouped: Dict[str, List[dict]] = {c.value: [] for c in Category}
    for r in rows:
        grouped[Category(r.category).value].append(serialize_item(r))

    if category is not None:
        grouped = {category.value: grouped[category.value]}

    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
    return grouped, pagination

# --------------------------
# Upload (store binary -> create row -> compensate)
# --------------------------

def upload_item(
    db: OrmSession,
    storage: Storage,
    *,
    data: bytes | None,
    filename: str | None,
    content_type: str | None,
    category: str,
    title: str | None,
    max_bytes: int,
) -> models.GalleryItem:
    validate_upload(data=data, filename=filename, content_type=content_type, storage=storage, max_bytes=max_bytes)
    cat = check_category(category)

    try:
        stored = storage.store(data=data, filename=filename or "", content_type=content_type or "")
    except StorageError as e:
        LOG.error("upload_store_failed err=%s", e)
        raise UpstreamStorageFailure()

    try:
        now = models.utcnow()
        item = models.GalleryItem(
            id=models.new_item_id(),
            url=stored.url,
            storage_ref=stored.reference,
            title=(title or "").strip() or None,
            category=cat,
            created_at=now,
            updated_at=now,
        )
        db.add(item)
        db.commit()
    except Exception:
        db.rollback()
        # no orphaned binary may survive a failed metadata write
        if not storage.delete(url=stored.url, reference=stored.reference):
            LOG.error("upload_compensation_failed url=%s ref=%s", stored.url, stored.reference)
        raise

    LOG.info("upload_ok id=%s category=%s", item.id, cat.value)
    return item

# --------------------------
# Update / delete / replace
# --------------------------

def update_item(db: OrmSession, storage: Storage, item_id: str, changes: Dict[str, Any]) -> models.GalleryItem:
    """
    Partial update of url/title/category. When the url changes the old binary
    (if this item owned one) is released after the commit.
    """
    item = get_item_or_404(db, item_id)
    old_url, old_ref = item.url, item.storage_ref

    url_changed = False
    if changes.get("url") is not None and changes["url"] != item.url:
        item.url = changes["url"]
        item.storage_ref = None
        url_changed = True
    if "title" in changes:
        item.title = (changes["title"] or "").strip() or None
    if changes.get("category") is not None:
        item.category = Category(changes["category"])

    item.updated_at = models.utcnow()
    db.commit()

    if url_changed:
        release_binary(db, storage, url=old_url, reference=old_ref, reason="url_replaced")
    return item

def delete_item(db: OrmSession, storage: Storage, item_id: str) -> models.GalleryItem:
    item = get_item_or_404(db, item_id)
    db.delete(item)
    db.commit()

    # metadata is the source of truth; storage cleanup is advisory
    release_binary(db, storage, url=item.url, reference=item.storage_ref, reason="item_deleted")
    return item

def replace_all(db: OrmSession, storage: Storage, items: Iterable[Dict[str, Any]]) -> List[models.GalleryItem]:
    """
    Wholesale replace of every gallery item. Binaries of removed items are
    released unless something in the new set still references them.
    """
    old = {(r.url, r.storage_ref) for r in db.query(models.GalleryItem).all()}

    # a kept url keeps its storage reference
    ref_by_url = {url: ref for url, ref in old if ref}

    now = models.utcnow()
    new_rows: List[models.GalleryItem] = []
    try:
        db.query(models.GalleryItem).delete(synchronize_session=False)
        for it in items:
            url = it["url"]
            row = models.GalleryItem(
                id=models.new_item_id(),
                url=url,
                storage_ref=ref_by_url.get(url),
                title=(it.get("title") or "").strip() or None,
                category=Category(it["category"]),
                created_at=now,
                updated_at=now,
            )
            db.add(row)
            new_rows.append(row)
        db.commit()
    except Exception:
        db.rollback()
        raise

    released = 0
    for url, ref in old:
        if release_binary(db, storage, url=url, reference=ref, reason="replaced"):
            released += 1

    LOG.info("replace_ok items=%d released=%d", len(new_rows), released)
    return new_rows
