"""
gophergather.services.upload_service — Image uploads
=====================================================

Event flyers and profile avatars.  Files land in ``$GATHER_UPLOAD_DIR``
(one sub-directory per bucket) and are served by the static-file mount at
``/api/uploads``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from pathlib import Path

from gophergather.errors import InvalidInput

logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(os.getenv("GATHER_UPLOAD_DIR", "uploads"))
URL_PREFIX = "/api/uploads/"

BUCKET_LIMITS: dict[str, int] = {
    "events": 10 * 1024 * 1024,   # 10 MB
    "avatars": 5 * 1024 * 1024,   # 5 MB
}
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
ALLOWED_MIME_TYPES = {
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
}


def ensure_upload_dir() -> None:
    """Create the upload directory and its buckets if they don't exist."""
    for bucket in BUCKET_LIMITS:
        (UPLOAD_DIR / bucket).mkdir(parents=True, exist_ok=True)


def validate_upload(
    filename: str, content: bytes, content_type: str | None, bucket: str
) -> str:
    """Check size, extension and MIME type.  Returns the lower-cased extension.

    Raises
    ------
    InvalidInput
        If validation fails (wrong type, too large, unknown bucket).
    """
    if bucket not in BUCKET_LIMITS:
        raise InvalidInput(f"Unknown upload bucket: {bucket!r}")
    max_size = BUCKET_LIMITS[bucket]

    if not content:
        raise InvalidInput("File is empty")
    if len(content) > max_size:
        raise InvalidInput(
            f"File too large: {len(content)} bytes (max {max_size // 1024 // 1024}MB)"
        )

    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise InvalidInput(
            f"File type not allowed: {ext!r}. "
            f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    if content_type and content_type not in ALLOWED_MIME_TYPES:
        raise InvalidInput(
            f"MIME type not allowed: {content_type!r}. "
            f"Allowed: {', '.join(sorted(ALLOWED_MIME_TYPES))}"
        )
    return ext


async def save_upload(
    filename: str,
    content: bytes,
    content_type: str | None = None,
    *,
    bucket: str = "events",
) -> str:
    """Validate and persist an uploaded image.

    Returns
    -------
    str
        URL path to the saved file (e.g. ``/api/uploads/events/abc123.png``).
    """
    ext = validate_upload(filename, content, content_type, bucket)

    unique_name = f"{uuid.uuid4().hex}{ext}"
    dest_dir = UPLOAD_DIR / bucket
    dest_dir.mkdir(parents=True, exist_ok=True)

    await asyncio.to_thread((dest_dir / unique_name).write_bytes, content)
    logger.info("Stored %s upload %s (%d bytes)", bucket, unique_name, len(content))

    return f"{URL_PREFIX}{bucket}/{unique_name}"


def delete_upload(url_path: str | None) -> bool:
    """Remove an uploaded file by its URL path.

    Returns True if the file existed and was deleted.
    """
    if not url_path or not url_path.startswith(URL_PREFIX):
        return False
    relative = url_path[len(URL_PREFIX):]
    parts = relative.split("/")
    if len(parts) != 2 or parts[0] not in BUCKET_LIMITS or parts[1] in ("", ".", ".."):
        return False
    filepath = UPLOAD_DIR / parts[0] / parts[1]
    if filepath.exists() and filepath.is_file():
        filepath.unlink()
        return True
    return False


def public_url(path: str | None) -> str | None:
    """Resolve a stored avatar/image path to something a browser can load."""
    if not path:
        return None
    if path.startswith(("http://", "https://", "/")):
        return path
    return f"{URL_PREFIX}{path}"
