# src/cmscrm/utils/media.py

import logging
import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import UploadFile

from src.cmscrm.config import settings
from src.cmscrm.utils.exceptions import ValidationError
from src.cmscrm.utils.timezone import timestamp_ms

logger = logging.getLogger(__name__)

UPLOADS_URL = "/uploads"  # Public URL prefix
ICON_SUBDIR = "icons"

ALLOWED_ICON_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/jpg", "image/gif", "image/svg+xml"}
)
INVALID_ICON_TYPE = "Invalid file type. Only PNG, JPG, JPEG, GIF, and SVG files are allowed."

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------

def get_upload_root() -> Path:
    """
    Ensure the uploads root exists and return it.
    Read on every call so the directory can be swapped in tests.
    """
    root = Path(settings.UPLOAD_DIR).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def ensure_subdir(subdir: str) -> Path:
    folder = get_upload_root() / subdir.strip().strip("/")
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def has_upload(upload: Optional[UploadFile]) -> bool:
    # browsers post an empty part when no file was picked
    return upload is not None and bool(upload.filename)


def safe_filename(name: str) -> str:
    base = Path(name or "file").name
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "file"


def validate_icon(upload: UploadFile) -> None:
    """MIME allow-list check; runs before anything touches the disk."""
    content_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    if content_type not in ALLOWED_ICON_TYPES:
        raise ValidationError.single("icon", INVALID_ICON_TYPE)


# ---------------------------------------------------------
#    SAVE ICON: page_<timestamp>_<original name>
# ---------------------------------------------------------
async def save_icon(upload: UploadFile) -> str:
    """
    Store an uploaded icon and return its PUBLIC URL:
        /uploads/icons/page_1718000000000_logo.png
    """
    validate_icon(upload)

    data: bytes = await upload.read(settings.MAX_FILE_SIZE + 1)
    if not data:
        raise ValidationError.single("icon", "Empty file")
    if len(data) > settings.MAX_FILE_SIZE:
        raise ValidationError.single("icon", "File size limit exceeded")

    folder = ensure_subdir(ICON_SUBDIR)
    filename = f"page_{timestamp_ms()}_{safe_filename(upload.filename or '')}"
    file_path = folder / filename
    n = 1
    while file_path.exists():
        file_path = folder / f"{n}_{filename}"
        n += 1

    file_path.write_bytes(data)
    logger.info("Saved icon file: %s", file_path)

    return f"{UPLOADS_URL}/{ICON_SUBDIR}/{file_path.name}"


# ---------------------------------------------------------
#    DELETE MEDIA FILE (best-effort)
# ---------------------------------------------------------
def media_path(url: str) -> Optional[Path]:
    """Public /uploads/... URL -> file system path, or None for foreign URLs."""
    if not url or not url.startswith(UPLOADS_URL + "/"):
        return None
    rel_path = url[len(UPLOADS_URL):].lstrip("/")
    root = get_upload_root()
    full_path = (root / rel_path).resolve()
    if root not in full_path.parents:
        return None
    return full_path


def delete_media_file(url: Optional[str]) -> bool:
    """
    Remove a stored file. A missing file is not an error.
    Returns True only when a file was actually removed.
    """
    path = media_path(url or "")
    if path is None:
        if url:
            logger.warning("Refusing to delete non-upload path: %s", url)
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error("Error deleting media file %s: %s", path, e)
        return False
    logger.info("Deleted media file: %s", path)
    return True


# ---------------------------------------------------------
#    TWO-PHASE ICON WRITE
# ---------------------------------------------------------
@asynccontextmanager
async def staged_icon(upload: Optional[UploadFile]) -> AsyncIterator[Optional[str]]:
    """
    Phase 1 stores the upload (if any) and yields its URL.
    Phase 2 (the body) writes the row; if it raises, the stored file
    is deleted so no orphan is left behind.
    """
    icon_url = await save_icon(upload) if has_upload(upload) else None
    try:
        yield icon_url
    except BaseException:
        if icon_url:
            logger.warning("Row write failed; removing orphaned icon %s", icon_url)
            delete_media_file(icon_url)
        raise
