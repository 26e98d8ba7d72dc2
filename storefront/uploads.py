# storefront/uploads.py
import logging
import os
import random
import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from .config import settings
from .errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
_CHUNK = 64 * 1024


def _sniff(head: bytes) -> Optional[str]:
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if len(head) >= 12 and head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    return None


def _unique_name(original: Optional[str], content_type: str) -> str:
    ext = os.path.splitext(original or "")[1].lower()
    if not ext or len(ext) > 6:
        ext = ALLOWED_IMAGE_TYPES[content_type]
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


def image_path(rel_path: str) -> Path:
    # only the basename is trusted; stored paths look like "img/<file>"
    return settings.image_dir / os.path.basename(rel_path)


async def save_image(upload: UploadFile) -> str:
    """Validate and store one uploaded image, returning its catalog-relative path."""
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Only JPG, PNG or WebP images are allowed")

    settings.image_dir.mkdir(parents=True, exist_ok=True)
    filename = _unique_name(upload.filename, content_type)
    dest = settings.image_dir / filename

    written = 0
    sniffed = None
    try:
        with open(dest, "wb") as fh:
            while True:
                chunk = await upload.read(_CHUNK)
                if not chunk:
                    break
                if written == 0:
                    sniffed = _sniff(chunk[:16])
                written += len(chunk)
                if written > MAX_IMAGE_BYTES:
                    raise ValidationError("Image must be smaller than 5MB")
                fh.write(chunk)
        if written == 0:
            raise ValidationError("Product image is required")
        if sniffed != content_type:
            raise ValidationError("Image content does not match its declared type")
    except ValidationError:
        dest.unlink(missing_ok=True)
        raise
    except OSError as e:
        dest.unlink(missing_ok=True)
        logger.error("Could not store upload %s: %s", dest, e)
        raise PersistenceError("Could not store image", path=str(dest)) from e

    logger.info("Stored image %s (%d bytes)", dest, written)
    return f"img/{filename}"


def delete_image(rel_path: Optional[str]) -> bool:
    if not rel_path:
        return False
    path = image_path(rel_path)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        logger.info("Image %s already gone", path)
        return False
    except OSError as e:
        logger.warning("Could not delete image %s: %s", path, e)
        return False
