"""
Local staging area for multipart uploads.

Uploaded bytes land here before they are forwarded to object storage.
"""

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import structlog
from fastapi import UploadFile

from library.errors import ValidationError

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StagedFile:
    """A file written to the staging area."""
    path: Path
    filename: str
    content_type: Optional[str] = None


def remove_staged_file(path: Path) -> Optional[OSError]:
    """
    Delete a staged file.

    Returns the error instead of raising so the caller decides whether to log it.
    A file that is already gone counts as removed.
    """
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return None
    except OSError as e:
        return e
    return None


class StagingArea:
    """Writes uploads to a local directory with a per-file size limit."""

    def __init__(self, upload_dir: Path, max_bytes: int):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    async def stage(self, upload: Optional[UploadFile]) -> Optional[StagedFile]:
        """
        Persist an upload to disk.

        Args:
            upload: Multipart file, or None when the field was not sent

        Returns:
            StagedFile, or None when nothing was uploaded

        Raises:
            ValidationError: If the file exceeds the size limit
        """
        if upload is None or not upload.filename:
            return None

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid.uuid4().hex}-{Path(upload.filename).name}"
        path = self.upload_dir / filename

        written = 0
        try:
            handle = await asyncio.to_thread(open, path, "wb")
            try:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise ValidationError(
                            f"File '{upload.filename}' exceeds the {self.max_bytes} byte limit."
                        )
                    await asyncio.to_thread(handle.write, chunk)
            finally:
                await asyncio.to_thread(handle.close)
        except BaseException:
            error = remove_staged_file(path)
            if error:
                logger.warning("Failed to delete local file", path=str(path), error=str(error))
            raise

        logger.debug("Staged upload", path=str(path), size=written, content_type=upload.content_type)
        return StagedFile(path=path, filename=filename, content_type=upload.content_type)

    async def stage_all(self, *uploads: Optional[UploadFile]) -> List[Optional[StagedFile]]:
        """Stage several uploads; if one fails, the ones already staged are removed."""
        staged: List[Optional[StagedFile]] = []
        try:
            for upload in uploads:
                staged.append(await self.stage(upload))
        except BaseException:
            for item in staged:
                if item is not None:
                    error = remove_staged_file(item.path)
                    if error:
                        logger.warning("Failed to delete local file", path=str(item.path), error=str(error))
            raise
        return staged
