"""
Local disk storage for uploaded media.

Files are written under ``settings.UPLOAD_PATH`` and served by the
``/uploads`` static mount.
"""
import logging
import os
import secrets
import time
from typing import List, Optional

from fastapi import UploadFile

from .config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class UploadError(ValueError):
    """Rejected upload; the message is safe to show to the client"""


def get_upload_dir() -> str:
    path = os.path.abspath(settings.UPLOAD_PATH)
    os.makedirs(path, exist_ok=True)
    return path


def public_path(filename: str) -> str:
    return f"/uploads/{filename}"


def _unique_filename(prefix: str, original: Optional[str]) -> str:
    ext = os.path.splitext(original or "")[1].lower()
    suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}"
    return f"{prefix}-{suffix}{ext}"


def save_upload(
    file: UploadFile,
    prefix: str,
    allowed_types: List[str],
    max_size: int
) -> str:
    """
    Validate and store an uploaded file.

    Args:
        file: Incoming multipart file
        prefix: Filename prefix, e.g. "product" or "activity-image"
        allowed_types: Accepted MIME types
        max_size: Maximum size in bytes

    Returns:
        The stored filename

    Raises:
        UploadError: wrong type or too large
    """
    if file.content_type not in allowed_types:
        raise UploadError("Only " + ", ".join(allowed_types) + " files are allowed!")

    filename = _unique_filename(prefix, file.filename)
    destination = os.path.join(get_upload_dir(), filename)

    written = 0
    try:
        with open(destination, "wb") as out:
            while True:
                chunk = file.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_size:
                    raise UploadError(f"File too large. Maximum size is {max_size // (1024 * 1024)}MB.")
                out.write(chunk)
    except UploadError:
        os.remove(destination)
        raise

    logger.info(f"Stored upload {filename} ({written} bytes)")
    return filename


def delete_local_upload(media_url: Optional[str]) -> bool:
    """Remove a file previously stored here. Remote URLs are ignored."""
    if not media_url or not media_url.startswith("/uploads/"):
        return False
    filename = os.path.basename(media_url)
    path = os.path.join(get_upload_dir(), filename)
    try:
        if os.path.exists(path):
            os.remove(path)
            return True
    except OSError as e:
        logger.error(f"Error deleting file {path}: {e}")
    return False
