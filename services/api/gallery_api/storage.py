# services/api/gallery_api/storage.py

import logging
import os
import secrets
import time
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings

LOG = logging.getLogger("gallery.storage")

GALLERY_FOLDER = "gallery"

@dataclass
class StoredObject:
    url: str                          # public URL written to GalleryItem.url
    reference: Optional[str] = None   # provider reference (s3 key); None for local files


class StorageError(Exception):
    pass


def generate_filename(original_name: str) -> str:
    ext = os.path.splitext(original_name or "")[1].lower()
    return f"image-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


class Storage:
    """
    store() raises StorageError when the binary could not be persisted.
    delete() is best effort: returns False (and logs) instead of raising.
    """

    allowed_extensions: frozenset = frozenset({".jpeg", ".jpg", ".png", ".gif", ".webp"})
    allowed_mime_types: frozenset = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})

    def store(self, *, data: bytes, filename: str, content_type: str) -> StoredObject:
        raise NotImplementedError

    def delete(self, *, url: str, reference: Optional[str]) -> bool:
        return False

    def owns(self, *, url: str, reference: Optional[str]) -> bool:
        return False


class LocalStorage(Storage):
    def __init__(self, base_dir: str, public_base_url: str):
        self.base_dir = os.path.join(base_dir, GALLERY_FOLDER)
        self.url_prefix = f"{public_base_url.rstrip('/')}/uploads/{GALLERY_FOLDER}/"
        os.makedirs(self.base_dir, exist_ok=True)

    def _path_for_url(self, url: str) -> Optional[str]:
        if not url or not url.startswith(self.url_prefix):
            return None
        name = url[len(self.url_prefix):]
        # only plain file names directly under the gallery dir
        if not name or name != os.path.basename(name) or name in (".", ".."):
            return None
        return os.path.join(self.base_dir, name)

    def store(self, *, data: bytes, filename: str, content_type: str) -> StoredObject:
        name = generate_filename(filename)
        full_path = os.path.join(self.base_dir, name)
        try:
            with open(full_path, "wb") as f:
                f.write(data)
        except OSError as e:
            # a short write must not leave a partial file behind
            try:
                os.remove(full_path)
            except FileNotFoundError:
                pass
            except OSError as rm_err:
                LOG.warning("local_partial_cleanup_failed path=%s err=%s", full_path, rm_err)
            raise StorageError(f"local_write_failed: {e}") from e
        return StoredObject(url=self.url_prefix + name, reference=None)

    def owns(self, *, url: str, reference: Optional[str]) -> bool:
        return reference is None and self._path_for_url(url) is not None

    def delete(self, *, url: str, reference: Optional[str]) -> bool:
        path = self._path_for_url(url)
        if path is None:
            return False
        try:
            if os.path.exists(path):
                os.remove(path)
            return True
        except OSError as e:
            LOG.warning("local_delete_failed path=%s err=%s", path, e)
            return False


class S3Storage(Storage):
    allowed_extensions = Storage.allowed_extensions | {".avif"}
    allowed_mime_types = Storage.allowed_mime_types | {"image/avif"}

    def __init__(self, settings: Settings, client=None):
        if not settings.S3_BUCKET:
            raise RuntimeError("STORAGE_BACKEND=s3 requires S3_BUCKET")
        self.bucket = settings.S3_BUCKET
        self.prefix = f"{settings.S3_PREFIX.strip('/')}/{GALLERY_FOLDER}".lstrip("/")
        self.region = settings.AWS_REGION
        self.public_base_url = (settings.S3_PUBLIC_BASE_URL or "").rstrip("/") or None

        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION,
            )
            client = session.client("s3", config=BotoConfig(signature_version="s3v4"))
        self.s3 = client

    def _public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.region:
            return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def store(self, *, data: bytes, filename: str, content_type: str) -> StoredObject:
        key = f"{self.prefix}/{generate_filename(filename)}"
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="public, max-age=31536000, immutable",
                ServerSideEncryption="AES256",
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"s3_put_failed: {e}") from e
        return StoredObject(url=self._public_url(key), reference=key)

    def owns(self, *, url: str, reference: Optional[str]) -> bool:
        return bool(reference)

    def delete(self, *, url: str, reference: Optional[str]) -> bool:
        if not reference:
            return False
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=reference)
            return True
        except (BotoCoreError, ClientError) as e:
            LOG.warning("s3_delete_failed key=%s err=%s", reference, e)
            return False


def build_storage(settings: Settings) -> Storage:
    if settings.STORAGE_BACKEND == "s3":
        return S3Storage(settings)
    if settings.STORAGE_BACKEND != "local":
        raise RuntimeError(f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}")
    return LocalStorage(base_dir=settings.UPLOAD_DIR, public_base_url=settings.PUBLIC_BASE_URL)
