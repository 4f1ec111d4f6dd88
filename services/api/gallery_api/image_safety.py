# services/api/gallery_api/image_safety.py

from __future__ import annotations

import os
from typing import Literal, Optional

from .errors import UploadRejected, ValidationFailure
from .models import Category, IMAGE_CATEGORIES
from .storage import Storage

ImageType = Literal["jpeg", "png", "gif", "webp", "avif"]

def sniff_type(data: bytes) -> Optional[ImageType]:
    if len(data) < 12:
        return None
    # JPEG: FF D8 FF
    if data[0:3] == b"\xFF\xD8\xFF":
        return "jpeg"
    # PNG: 89 50 4E 47 0D 0A 1A 0A
    if data[0:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if data[0:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if data[0:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data[4:12] in (b"ftypavif", b"ftypavis"):
        return "avif"
    return None

def _type_error(storage: Storage) -> UploadRejected:
    exts = ", ".join(sorted(e.lstrip(".") for e in storage.allowed_extensions))
    return UploadRejected(f"Only image files are allowed ({exts}). Invalid file type.")

def check_category(category: str | Category) -> Category:
    try:
        cat = Category(category)
    except ValueError:
        cat = None
    if cat not in IMAGE_CATEGORIES:
        raise ValidationFailure(
            errors=[{
                "field": "category",
                "message": "Category must be studentWork, programs, or photos. "
                           "Videos cannot be uploaded - use PATCH /api/gallery/:id with URL instead",
            }]
        )
    return cat

def validate_upload(
    *,
    data: bytes | None,
    filename: str | None,
    content_type: str | None,
    storage: Storage,
    max_bytes: int,
) -> ImageType:
    """
    Security/robustness:
      - payload present and within max_bytes (boundary inclusive)
      - declared MIME type AND extension both in the backend's allowed set
      - magic bytes look like an image (declared type alone is not trusted)
    """
    if data is None:
        raise UploadRejected("No image file provided")

    if len(data) > int(max_bytes):
        raise UploadRejected(f"File too large. Maximum size is {int(max_bytes) // (1024 * 1024)}MB")

    ext = os.path.splitext(filename or "")[1].lower()
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    if ext not in storage.allowed_extensions or mime not in storage.allowed_mime_types:
        raise _type_error(storage)

    sniffed = sniff_type(data)
    if sniffed is None or f".{sniffed}" not in storage.allowed_extensions:
        raise _type_error(storage)

    return sniffed
