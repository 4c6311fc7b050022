# app/core/storage_utils.py
import uuid

from fastapi import HTTPException, UploadFile, status

from app.core.config import get_settings
from app.core.supabase_client import supabase_admin

MAX_IMAGE_BYTES = 5 * 1024 * 1024

# MIME type -> extension used for the stored object
ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def _bucket():
    return supabase_admin().storage.from_(get_settings().STORAGE_BUCKET)


def _public_prefix() -> str:
    return f"/storage/v1/object/public/{get_settings().STORAGE_BUCKET}/"


def read_upload(file: UploadFile) -> tuple[str, bytes]:
    """(content_type, bytes) of a multipart upload; 400 when the type is missing."""
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )
    return file.content_type, file.file.read()


def validate_image(content_type: str, file_bytes: bytes) -> str:
    """
    Accept JPEG, PNG or WEBP up to 5MB and return the file extension.
    Raises 400 for other types and 413 for oversized files.
    """
    ext = ALLOWED_IMAGE_CONTENT_TYPES.get(content_type)
    if ext is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unsupported image type. Allowed: JPEG, PNG, WEBP.",
        )
    if len(file_bytes) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Image too large (max 5MB).",
        )
    return ext


def upload_to_storage(path: str, file_bytes: bytes, content_type: str | None = None) -> str:
    """
    Write bytes to `path` in the shop bucket, replacing any object already
    there, and return the public URL. Supabase errors propagate.
    """
    options = {"upsert": "true"}
    if content_type:
        options["content-type"] = content_type

    bucket = _bucket()
    bucket.upload(path, file_bytes, options)
    return bucket.get_public_url(path)


def path_from_public_url(url: str) -> str | None:
    """
    '.../storage/v1/object/public/assets/products/p/hero.png' -> 'products/p/hero.png'.
    None for URLs outside the shop bucket.
    """
    prefix = _public_prefix()
    _, found, tail = url.partition(prefix)
    return tail if found else None


def delete_public_url(url: str) -> None:
    # Foreign URLs (e.g. images pasted from a supplier site) are left alone.
    path = path_from_public_url(url)
    if path:
        _bucket().remove([path])


def generate_filename(ext: str) -> str:
    return f"{uuid.uuid4().hex}.{ext}"
