"""Avatar files on local disk: incoming uploads land in the temp dir and are moved
into the upload dir once the user record is accepted.

Stored avatar paths are relative to settings.storage_dir, e.g. "uploads/avatar-....png".
"""

import asyncio
import logging
import os
import random
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from app.config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass
class UploadedFile:
    """Descriptor handed over by the upload layer: where the temp file is and what to call it."""

    temp_path: Path
    filename: str
    original_name: str
    content_type: str
    size: int


def storage_root() -> Path:
    return Path(settings.storage_dir)


def ensure_dirs() -> None:
    for sub in (settings.temp_dir, settings.upload_dir):
        (storage_root() / sub).mkdir(parents=True, exist_ok=True)


def _unique_name(field: str, original_name: str) -> str:
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{field}-{suffix}{Path(original_name).suffix.lower()}"


async def save_temp_upload(upload: UploadFile, field: str = "avatar") -> UploadedFile:
    """Write an incoming multipart file to the temp dir and describe it.

    Reading stops once the file is over the size limit; the recorded size is then
    past the limit, so the avatar check still rejects it.
    """
    ensure_dirs()
    original_name = upload.filename or ""
    filename = _unique_name(field, original_name)
    temp_path = storage_root() / settings.temp_dir / filename
    size = 0
    with open(temp_path, "wb") as out:
        while chunk := await upload.read(CHUNK_SIZE):
            size += len(chunk)
            if size > settings.max_file_size_bytes:
                break
            await asyncio.to_thread(out.write, chunk)
    return UploadedFile(
        temp_path=temp_path,
        filename=filename,
        original_name=original_name,
        content_type=upload.content_type or "",
        size=size,
    )


def promote(upload: UploadedFile) -> str:
    """Move the temp file into the upload dir; returns the stored relative path."""
    ensure_dirs()
    relative = f"{settings.upload_dir}/{upload.filename}"
    shutil.move(str(upload.temp_path), str(storage_root() / relative))
    return relative


def remove(relative_path: str | None) -> None:
    """Delete a stored file if it exists."""
    if not relative_path:
        return
    path = storage_root() / relative_path
    try:
        os.unlink(path)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)


def discard(upload: UploadedFile | None) -> None:
    """Drop a temp upload that was rejected or not used."""
    if upload is None:
        return
    try:
        os.unlink(upload.temp_path)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Could not remove temp upload %s: %s", upload.temp_path, e)
