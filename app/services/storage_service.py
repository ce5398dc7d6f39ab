import logging
import os
import random
import time
from pathlib import Path

from app.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".wav"


def upload_root() -> Path:
    root = Path(settings.upload_dir)
    root.mkdir(parents=True, exist_ok=True)
    return root


def unique_filename(original: str | None) -> str:
    extension = os.path.splitext(original or "")[1] or DEFAULT_EXTENSION
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{extension}"


def save_audio(original_name: str | None, content: bytes) -> str:
    filename = unique_filename(original_name)
    path = upload_root() / filename
    path.write_bytes(content)
    logger.info("Stored upload %s (%d bytes)", filename, len(content))
    return filename


def public_url(filename: str) -> str:
    return f"/uploads/{filename}"
