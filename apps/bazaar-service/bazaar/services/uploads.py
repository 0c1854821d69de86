"""
Local file storage for multipart uploads (ad images and verification documents).
"""
from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024

AD_IMAGE_TYPES: Dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

DOCUMENT_TYPES: Dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
}

AD_IMAGE_DIR = "ads"
INDIVIDUAL_VERIFICATION_DIR = "individual_verification"
BUSINESS_VERIFICATION_DIR = "business_verification"


class UploadError(ValueError):
    pass


@dataclass
class StoredFile:
    filename: str
    file_path: str
    original_name: Optional[str]
    file_size: int
    mime_type: str


def get_upload_root() -> Path:
    return Path(os.getenv("UPLOAD_DIR", "uploads"))


def save_upload(
    upload: UploadFile,
    subdir: str,
    allowed_types: Dict[str, str],
    *,
    label: str = "File",
    max_size: int = MAX_FILE_SIZE,
) -> StoredFile:
    content_type = (upload.content_type or "").lower()
    if content_type not in allowed_types:
        kinds = sorted({ext.lstrip(".").upper() for ext in allowed_types.values()})
        raise UploadError(f"{label} must be one of: {', '.join(kinds)}")

    data = upload.file.read(max_size + 1)
    if not data:
        raise UploadError(f"{label} is empty")
    if len(data) > max_size:
        raise UploadError(f"{label} must be less than {max_size // (1024 * 1024)}MB")

    filename = f"{uuid.uuid4().hex}{allowed_types[content_type]}"
    target_dir = get_upload_root() / subdir
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / filename).write_bytes(data)

    return StoredFile(
        filename=filename,
        file_path=f"{subdir}/{filename}",
        original_name=upload.filename,
        file_size=len(data),
        mime_type=content_type,
    )


def remove_stored_file(file_path: Optional[str]) -> None:
    if not file_path:
        return
    path = get_upload_root() / file_path
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("upload_remove_failed path=%s err=%s", path, exc)
