"""
Firebase Storage blob store for uploaded files. Callers keep only the
returned public URL; everything else is derived from it.
"""
import logging
import mimetypes
import os
import uuid
from typing import Optional
from urllib.parse import quote, unquote

from firebase_admin import storage

from learnhub.core.config import settings
from learnhub.core.exceptions import StorageUnavailableError, ValidationFailedError
from learnhub.core.firebase_config import get_firebase_app

logger = logging.getLogger(__name__)

PUBLIC_URL_BASE = "https://storage.googleapis.com"

ALLOWED_DOCUMENT_EXTENSIONS = {
    ".pdf", ".doc", ".docx", ".ppt", ".pptx", ".xls", ".xlsx",
    ".txt", ".csv", ".rtf", ".md", ".zip",
}


def validate_document(filename: str, size: int, max_size: Optional[int] = None) -> str:
    """Returns the lowercased extension, or raises ValidationFailedError."""
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_DOCUMENT_EXTENSIONS:
        raise ValidationFailedError(f"File extension '{ext or filename}' is not allowed.", code="invalid_file_type")
    limit = max_size if max_size is not None else settings.MAX_SUBMISSION_FILE_SIZE
    if size <= 0:
        raise ValidationFailedError("Uploaded file is empty.", code="empty_file")
    if size > limit:
        raise ValidationFailedError(f"File is too large (max {limit // (1024 * 1024)}MB).", code="file_too_large")
    return ext

def _get_bucket():
    if not settings.FIREBASE_STORAGE_BUCKET:
        raise StorageUnavailableError("File storage is not configured (FIREBASE_STORAGE_BUCKET is unset).")
    try:
        return storage.bucket(settings.FIREBASE_STORAGE_BUCKET, app=get_firebase_app())
    except (ValueError, OSError) as e:
        logger.error(f"Could not open storage bucket {settings.FIREBASE_STORAGE_BUCKET}: {e}", exc_info=True)
        raise StorageUnavailableError() from e

def public_url(storage_path: str) -> str:
    encoded = "/".join(quote(part, safe="") for part in storage_path.split("/"))
    return f"{PUBLIC_URL_BASE}/{settings.FIREBASE_STORAGE_BUCKET}/{encoded}"

def storage_path_from_url(url: str) -> Optional[str]:
    prefix = f"{PUBLIC_URL_BASE}/{settings.FIREBASE_STORAGE_BUCKET}/"
    if not url or not url.startswith(prefix):
        return None
    return "/".join(unquote(part) for part in url[len(prefix):].split("/"))

def store_bytes(content: bytes, filename: str, folder: str) -> str:
    """
    Uploads `content` under STORAGE_PATH_PREFIX/folder with a unique name,
    makes it public and returns its URL. The original filename is kept for
    downloads through the content disposition.
    """
    ext = os.path.splitext(filename)[1].lower()
    storage_path = f"{settings.STORAGE_PATH_PREFIX}/{folder}/{uuid.uuid4().hex}{ext}"
    content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

    bucket = _get_bucket()
    try:
        blob = bucket.blob(storage_path)
        blob.cache_control = "private, max-age=86400"
        blob.content_disposition = f"attachment; filename*=UTF-8''{quote(filename, safe='')}"
        blob.upload_from_string(content, content_type=content_type)
        blob.make_public()
    except Exception as e:
        logger.error(f"Upload of '{filename}' to {storage_path} failed: {e}", exc_info=True)
        raise StorageUnavailableError("Could not store the uploaded file. Please retry.") from e

    logger.info(f"Stored upload '{filename}' ({len(content)} bytes, {content_type}) at {storage_path}")
    return public_url(storage_path)

def delete_by_url(url: str) -> bool:
    """Removes a file previously returned by `store_bytes`. Returns False if it was not there."""
    storage_path = storage_path_from_url(url)
    if storage_path is None:
        return False

    blob = _get_bucket().blob(storage_path)
    try:
        if not blob.exists():
            logger.warning(f"Stored upload {storage_path} already gone")
            return False
        blob.delete()
    except Exception as e:
        logger.error(f"Deleting stored upload {storage_path} failed: {e}", exc_info=True)
        raise StorageUnavailableError("Could not remove the stored file.") from e
    logger.info(f"Removed stored upload {storage_path}")
    return True
