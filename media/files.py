"""
media/files.py -- Spooling multipart uploads to a local temp directory.

The route layer hands each UploadFile to save_upload(), which streams it to
UPLOAD_DIR in chunks with a size cap and an image-type allow-list. The saved
path is what MediaUploader.upload() receives; the uploader deletes it after
the remote upload attempt.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import UploadFile

ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
_CHUNK_SIZE = 64 * 1024


class UploadRejected(Exception):
    """The uploaded file is unacceptable (type or size)."""


class TempFileStore:
    def __init__(self, upload_dir: str, max_size_mb: int) -> None:
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_size_bytes = max_size_mb * 1024 * 1024

    async def save_upload(self, upload: Optional[UploadFile]) -> Optional[str]:
        """Persist an upload locally and return its path, or None when nothing was sent.

        Raises UploadRejected for a disallowed extension or an oversized file.
        Partial files are removed before raising.
        """
        if upload is None or not upload.filename:
            return None

        ext = Path(upload.filename).suffix.lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise UploadRejected(
                f"File type '{ext or 'none'}' is not allowed. Allowed: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
            )

        # Never trust the client filename for the on-disk name.
        dest = self.upload_dir / f"{uuid.uuid4().hex}{ext}"
        total = 0
        try:
            async with aiofiles.open(dest, "wb") as f:
                while chunk := await upload.read(_CHUNK_SIZE):
                    total += len(chunk)
                    if total > self.max_size_bytes:
                        raise UploadRejected(f"File too large. Maximum size: {self.max_size_bytes // (1024 * 1024)}MB")
                    await f.write(chunk)
        except BaseException:
            dest.unlink(missing_ok=True)
            raise
        return str(dest)

    @staticmethod
    def discard(path: Optional[str]) -> None:
        if path:
            Path(path).unlink(missing_ok=True)
