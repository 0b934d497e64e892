"""
media/uploader.py -- Remote media hosting for avatar and cover images.

CloudinaryUploader posts a signed upload to Cloudinary's REST API with a
module-level requests.Session. Failures never raise: any network, HTTP or
payload problem is logged and returned as None, and the caller decides
whether the missing asset is fatal (avatar) or tolerable (cover image).

The blocking HTTP call runs in a worker thread (asyncio.to_thread) so an
upload in one request does not stall the event loop for others.

The local temp file is always deleted after the attempt, uploaded or not.

Layer rule: no imports from api/ or auth/. core/ is allowed.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Protocol

import requests

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("accountservice.media")

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"

# Shared session for connection pooling. Cloudinary answers uploads directly;
# a redirect chain is never expected, so keep the hop limit low.
_session = requests.Session()
_session.max_redirects = 3


@dataclass(frozen=True)
class UploadedAsset:
    url: str
    public_id: str = ""


class MediaUploader(Protocol):
    async def upload(self, local_path: Optional[str]) -> Optional[UploadedAsset]: ...


def _sign(params: dict[str, str], api_secret: str) -> str:
    """Cloudinary request signature: SHA-1 of the sorted params followed by the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()  # noqa: S324 -- Cloudinary's scheme


def _remove_local(local_path: str) -> None:
    try:
        Path(local_path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete temp upload %s: %s", local_path, e)


class CloudinaryUploader:
    """Uploads local files to Cloudinary and returns their hosted URL."""

    def __init__(self, settings: Settings) -> None:
        self._cloud_name = settings.cloudinary_cloud_name
        self._api_key = settings.cloudinary_api_key
        self._api_secret = settings.cloudinary_api_secret
        self._timeout = settings.upload_timeout_seconds

    async def upload(self, local_path: Optional[str]) -> Optional[UploadedAsset]:
        if not local_path:
            return None
        try:
            return await asyncio.to_thread(self._upload_sync, local_path)
        finally:
            _remove_local(local_path)

    def _upload_sync(self, local_path: str) -> Optional[UploadedAsset]:
        if not (self._cloud_name and self._api_key and self._api_secret):
            logger.error("Cloudinary is not configured; cannot upload %s", Path(local_path).name)
            return None

        params = {"timestamp": str(int(time.time()))}
        data = {**params, "api_key": self._api_key, "signature": _sign(params, self._api_secret)}
        url = CLOUDINARY_UPLOAD_URL.format(cloud_name=self._cloud_name)
        try:
            with open(local_path, "rb") as fh:
                resp = _session.post(url, data=data, files={"file": fh}, timeout=self._timeout)
            resp.raise_for_status()
            body = resp.json()
        except (OSError, requests.RequestException, ValueError) as e:
            logger.warning("Upload failed for %s: %s", Path(local_path).name, e)
            return None

        hosted_url = body.get("secure_url") or body.get("url")
        if not hosted_url:
            logger.warning("Upload response for %s carried no URL", Path(local_path).name)
            return None
        logger.info("Uploaded %s to %s", Path(local_path).name, hosted_url)
        return UploadedAsset(url=hosted_url, public_id=body.get("public_id", ""))
