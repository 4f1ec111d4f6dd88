# services/api/gallery_api/routes_gallery.py

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Path, Query, Request, UploadFile
from sqlalchemy.orm import Session as OrmSession
from starlette.concurrency import run_in_threadpool

from . import gallery
from .audit import log_audit
from .db import get_db
from .models import Category
from .schemas import (
    OBJECT_ID_PATTERN,
    GalleryPage, ItemResp, MessageResp, ReplaceReq, ReplaceResp,
    UpdateItemReq, UploadResp, UploadedItemOut,
)
from .security import get_settings, rate_limit, require_admin

router = APIRouter(prefix="/api/gallery", tags=["gallery"])

def _storage(request: Request):
    return request.app.state.storage

@router.get("", response_model=GalleryPage)
def list_gallery(
    category: Category | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: OrmSession = Depends(get_db),
):
    data, pagination = gallery.list_items(db, category=category, page=page, limit=limit)
    return {"success": True, "data": data, "pagination": pagination}

@router.post(
    "/upload",
    status_code=201,
    response_model=UploadResp,
    dependencies=[Depends(require_admin), Depends(rate_limit("upload", "UPLOAD_RATE_LIMIT"))],
)
async def upload_gallery_image(
    request: Request,
    image: UploadFile | None = File(default=None),
    category: str | None = Form(default=None),
    title: str | None = Form(default=None, max_length=200),
    db: OrmSession = Depends(get_db),
):
    settings = get_settings(request)
    max_bytes = settings.max_upload_bytes

    data = None
    if image is not None:
        # one byte past the cap is enough to know it's too large
        data = await image.read(max_bytes + 1)
        await image.close()

    item = await run_in_threadpool(
        gallery.upload_item,
        db,
        _storage(request),
        data=data,
        filename=image.filename if image is not None else None,
        content_type=image.content_type if image is not None else None,
        category=category or "",
        title=title,
        max_bytes=max_bytes,
    )

    log_audit(db, event_type="gallery_upload", request=request, payload={"item_id": item.id, "category": item.category.value})
    await run_in_threadpool(db.commit)

    return UploadResp(data=UploadedItemOut(id=item.id, url=item.url, category=item.category, title=item.title))

@router.patch("/{item_id}", response_model=ItemResp, dependencies=[Depends(require_admin)])
def update_gallery_item(
    payload: UpdateItemReq,
    request: Request,
    item_id: str = Path(pattern=OBJECT_ID_PATTERN),
    db: OrmSession = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    item = gallery.update_item(db, _storage(request), item_id, changes)

    log_audit(db, event_type="gallery_update", request=request, payload={"item_id": item.id, "fields": sorted(changes)})
    db.commit()

    return ItemResp(message="Gallery item updated successfully", data=gallery.serialize_item(item, with_updated=True))

@router.put("", response_model=ReplaceResp, dependencies=[Depends(require_admin)])
def replace_gallery(payload: ReplaceReq, request: Request, db: OrmSession = Depends(get_db)):
    rows = gallery.replace_all(db, _storage(request), [i.model_dump() for i in payload.items])

    log_audit(db, event_type="gallery_replace", request=request, payload={"items": len(rows)})
    db.commit()

    return ReplaceResp(data=[gallery.serialize_item(r, with_updated=True) for r in rows])

@router.delete("/{item_id}", response_model=MessageResp, dependencies=[Depends(require_admin)])
def delete_gallery_item(request: Request, item_id: str = Path(pattern=OBJECT_ID_PATTERN), db: OrmSession = Depends(get_db)):
    item = gallery.delete_item(db, _storage(request), item_id)

    log_audit(db, event_type="gallery_delete", request=request, payload={"item_id": item.id})
    db.commit()

    return MessageResp(message="Gallery item deleted successfully")
