"""
Tests for the local staging area.
"""

import asyncio
import io
from unittest.mock import patch

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from library.errors import ValidationError
from storage.staging import StagingArea, remove_staged_file


def make_upload(content: bytes, filename="cover.png", content_type="image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def staging(tmp_path):
    return StagingArea(tmp_path / "uploads", max_bytes=16)


@pytest.mark.asyncio
async def test_stage_writes_file(staging):
    staged = await staging.stage(make_upload(b"png-bytes"))

    assert staged.path.read_bytes() == b"png-bytes"
    assert staged.filename.endswith("-cover.png")
    assert staged.content_type == "image/png"


@pytest.mark.asyncio
async def test_missing_upload_is_not_staged(staging):
    assert await staging.stage(None) is None


@pytest.mark.asyncio
async def test_oversized_upload_is_rejected_and_removed(staging):
    with pytest.raises(ValidationError):
        await staging.stage(make_upload(b"x" * 17))

    assert list(staging.upload_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_stage_all_cleans_up_on_failure(staging):
    with pytest.raises(ValidationError):
        await staging.stage_all(make_upload(b"small"), make_upload(b"y" * 40, filename="book.pdf"))

    assert list(staging.upload_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_stage_all_keeps_positions(staging):
    cover, body = await staging.stage_all(make_upload(b"small"), None)

    assert cover is not None
    assert body is None


def test_remove_staged_file(tmp_path):
    path = tmp_path / "staged.bin"
    path.write_bytes(b"data")

    assert remove_staged_file(path) is None
    assert not path.exists()
    # Already gone counts as removed.
    assert remove_staged_file(path) is None


def test_remove_staged_file_reports_errors(tmp_path):
    directory = tmp_path / "not-a-file"
    directory.mkdir()

    assert isinstance(remove_staged_file(directory), OSError)


@pytest.mark.asyncio
async def test_disk_writes_run_in_worker_threads(staging):
    offloaded = []
    to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(getattr(func, "__name__", ""))
        return await to_thread(func, *args, **kwargs)

    with patch("storage.staging.asyncio.to_thread", new=recording_to_thread):
        staged = await staging.stage(make_upload(b"png-bytes"))

    assert staged.path.read_bytes() == b"png-bytes"
    assert offloaded == ["open", "write", "close"]
