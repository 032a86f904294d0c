"""
Upload relay.

Stores uploaded files under ``<UPLOAD_DIR>/<user id>/<kind>/`` and returns
the public URL they are served from.
"""

import logging
import os
import random
import time
from pathlib import Path
from typing import Optional

from careconnect.core.config import settings
from careconnect.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

UPLOAD_KINDS = ("posts", "profile", "cover")
UPLOAD_URL_PREFIX = "/uploads"


def _extension(filename: Optional[str]) -> str:
    suffix = Path(filename or "").suffix.lower()
    return suffix if suffix else ".bin"


def store_upload(
    user_id: int,
    filename: Optional[str],
    data: bytes,
    kind: str = "posts",
    upload_dir: Optional[str] = None,
) -> str:
    """
    Write an uploaded file and return its URL.

    Args:
        user_id: Owner of the file; files are grouped per user
        filename: Client-side name, used only for its extension
        data: File contents
        kind: "posts", "profile" or "cover"
        upload_dir: Storage root (defaults to settings.UPLOAD_DIR)

    Returns:
        URL of the form /uploads/<user id>/<kind>/<name>
    """
    if kind not in UPLOAD_KINDS:
        raise ValidationError(f"Upload type must be one of: {', '.join(UPLOAD_KINDS)}")

    target_dir = Path(upload_dir or settings.UPLOAD_DIR) / str(user_id) / kind
    os.makedirs(target_dir, exist_ok=True)

    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    name = f"{unique_suffix}{_extension(filename)}"
    (target_dir / name).write_bytes(data)

    logger.info("Stored %d byte upload for user %s at %s/%s", len(data), user_id, kind, name)
    return f"{UPLOAD_URL_PREFIX}/{user_id}/{kind}/{name}"
