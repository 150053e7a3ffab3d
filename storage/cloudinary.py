"""
Async client for the Cloudinary upload API.

Signed requests are sent with httpx; every call is bounded by the client
timeout so a stalled provider never holds a request open indefinitely.
"""

import asyncio
import hashlib
import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)

API_BASE_URL = "https://api.cloudinary.com/v1_1"

# Parameters that are sent but never signed.
UNSIGNED_PARAMS = {"file", "api_key", "resource_type", "cloud_name"}


class StorageError(Exception):
    """Raised when object storage rejects a request or cannot be reached."""


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """
    Compute the request signature: SHA-1 over the sorted ``key=value`` pairs
    joined by ``&``, followed by the API secret.
    """
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in UNSIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryClient:
    """Uploads and destroys assets in a Cloudinary account."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self.http_client.aclose()

    def _endpoint(self, resource_type: str, action: str) -> str:
        return f"{API_BASE_URL}/{self.cloud_name}/{resource_type}/{action}"

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {key: value for key, value in params.items() if value is not None}
        params["timestamp"] = int(time.time())
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    async def _post(self, url: str, data: Dict[str, Any], files: Optional[dict] = None) -> Dict[str, Any]:
        try:
            response = await self.http_client.post(url, data=data, files=files)
        except httpx.TimeoutException as e:
            raise StorageError("Object storage request timed out.") from e
        except httpx.HTTPError as e:
            raise StorageError(str(e) or "Object storage request failed.") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400 or "error" in payload:
            message = payload.get("error", {}).get("message") if isinstance(payload.get("error"), dict) else None
            raise StorageError(message or f"Object storage responded with {response.status_code}.")
        return payload

    async def upload(
        self,
        file_path: Path,
        folder: str,
        resource_type: str = "image",
        filename_override: Optional[str] = None,
        format: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Upload a local file.

        Args:
            file_path: Path of the file on local disk
            folder: Destination folder
            resource_type: ``image`` or ``raw``
            filename_override: Name to tag the stored object with
            format: Stored format; omitted to keep the original content type

        Returns:
            Provider response; contains ``secure_url`` and ``public_id``
        """
        data = self._signed({
            "folder": folder,
            "filename_override": filename_override,
            "format": format,
        })
        try:
            content = await asyncio.to_thread(Path(file_path).read_bytes)
        except OSError as e:
            raise StorageError(f"Cannot read staged file: {e}") from e
        files = {"file": (filename_override or Path(file_path).name, content)}
        result = await self._post(self._endpoint(resource_type, "upload"), data, files)

        logger.info(
            "Uploaded asset",
            public_id=result.get("public_id"),
            resource_type=resource_type,
            folder=folder
        )
        return result

    async def destroy(self, public_id: str, resource_type: str = "image") -> Dict[str, Any]:
        """Delete a stored asset by its public identifier."""
        data = self._signed({"public_id": public_id})
        result = await self._post(self._endpoint(resource_type, "destroy"), data)
        logger.info("Destroyed asset", public_id=public_id, resource_type=resource_type, result=result.get("result"))
        return result
