"""
Asset transfer workflow: forward staged files to object storage.

A staged file is always removed from local disk once its transfer is over,
whether the upload succeeded or not. Remote deletes are best-effort and
report failures as return values.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import structlog

from library.errors import UploadFailed
from .cloudinary import CloudinaryClient, StorageError
from .staging import StagedFile, remove_staged_file

logger = structlog.get_logger(__name__)


class AssetCategory(str, Enum):
    """Kind of asset; selects folder and resource type."""
    IMAGE = "image"
    RAW_DOCUMENT = "raw-document"

    @property
    def resource_type(self) -> str:
        return "image" if self is AssetCategory.IMAGE else "raw"

    @property
    def fallback_message(self) -> str:
        if self is AssetCategory.IMAGE:
            return "Failed to upload image to Cloudinary."
        return "Failed to upload book file to Cloudinary."


@dataclass(frozen=True)
class RemoteAsset:
    """An uploaded asset: its public URL and storage identifier."""
    url: str
    remote_id: str


def remote_id_from_url(url: Optional[str], category: AssetCategory) -> Optional[str]:
    """
    Derive the storage identifier from the last two URL path segments
    (``folder/name``). Images drop the file extension, raw documents keep it.
    """
    if not url:
        return None
    segments = url.split("/")
    if len(segments) < 2 or not segments[-1] or not segments[-2]:
        return None
    folder, name = segments[-2], segments[-1]
    if category is AssetCategory.IMAGE:
        name = name.split(".")[0]
    return f"{folder}/{name}"


def image_format(content_type: Optional[str]) -> Optional[str]:
    """Subtype of a MIME type (``image/png`` -> ``png``), None when absent."""
    if not content_type or "/" not in content_type:
        return None
    subtype = content_type.split("/")[-1].strip()
    return subtype or None


class AssetTransfer:
    """Moves staged files into object storage and removes stale assets."""

    def __init__(self, client: CloudinaryClient, image_folder: str, document_folder: str):
        self.client = client
        self.folders = {
            AssetCategory.IMAGE: image_folder,
            AssetCategory.RAW_DOCUMENT: document_folder,
        }

    async def transfer(
        self,
        local_path: Path,
        display_name: str,
        category: AssetCategory,
        content_type: Optional[str] = None
    ) -> RemoteAsset:
        """
        Upload a staged file and delete the local copy.

        Args:
            local_path: Staged file on local disk
            display_name: Name the stored object is tagged with
            category: Image or raw document
            content_type: Source MIME type, used for the image format

        Returns:
            RemoteAsset with public URL and remote identifier

        Raises:
            UploadFailed: If object storage rejected the upload
        """
        if category is AssetCategory.IMAGE:
            stored_format = image_format(content_type)
        else:
            stored_format = "pdf"

        try:
            result = await self.client.upload(
                local_path,
                folder=self.folders[category],
                resource_type=category.resource_type,
                filename_override=display_name,
                format=stored_format,
            )
        except StorageError as e:
            logger.error("Asset upload failed", category=category.value, name=display_name, error=str(e))
            raise UploadFailed(str(e) or category.fallback_message) from e
        finally:
            error = remove_staged_file(local_path)
            if error:
                logger.warning("Failed to delete local file", path=str(local_path), error=str(error))

        url = result.get("secure_url")
        if not url:
            raise UploadFailed(category.fallback_message)
        return RemoteAsset(url=url, remote_id=result.get("public_id") or remote_id_from_url(url, category))

    async def transfer_staged(self, staged: StagedFile, category: AssetCategory) -> RemoteAsset:
        return await self.transfer(staged.path, staged.filename, category, staged.content_type)

    async def discard(
        self,
        url: Optional[str],
        category: AssetCategory,
        remote_id: Optional[str] = None
    ) -> Optional[StorageError]:
        """
        Delete a remote asset, preferring the stored identifier over one
        derived from the URL.

        Returns:
            The storage error on failure, None otherwise
        """
        remote_id = remote_id or remote_id_from_url(url, category)
        if not remote_id:
            return None
        try:
            await self.client.destroy(remote_id, resource_type=category.resource_type)
        except StorageError as e:
            return e
        return None
