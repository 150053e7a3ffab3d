"""
Tests for the asset transfer workflow.
"""

from unittest.mock import patch

import pytest

from library.errors import UploadFailed
from storage.assets import AssetCategory, image_format, remote_id_from_url
from storage.cloudinary import StorageError


class TestRemoteIdFromUrl:
    """Deriving storage identifiers from public URLs."""

    def test_image_drops_extension(self):
        url = "https://res.cloudinary.com/demo/image/upload/v1712/book-covers/abc123.png"
        assert remote_id_from_url(url, AssetCategory.IMAGE) == "book-covers/abc123"

    def test_raw_document_keeps_extension(self):
        url = "https://res.cloudinary.com/demo/raw/upload/v1712/book-pdfs/dune.pdf"
        assert remote_id_from_url(url, AssetCategory.RAW_DOCUMENT) == "book-pdfs/dune.pdf"

    def test_unusable_urls(self):
        assert remote_id_from_url(None, AssetCategory.IMAGE) is None
        assert remote_id_from_url("", AssetCategory.IMAGE) is None
        assert remote_id_from_url("cover.png", AssetCategory.IMAGE) is None


def test_image_format_uses_mime_subtype():
    assert image_format("image/png") == "png"
    assert image_format("image/jpeg") == "jpeg"
    assert image_format("image/") is None
    assert image_format("image") is None
    assert image_format(None) is None


class TestTransfer:
    """Uploading staged files."""

    @pytest.mark.asyncio
    async def test_image_upload(self, assets, storage_client, make_staged):
        staged = make_staged("cover.png", content_type="image/png")

        asset = await assets.transfer_staged(staged, AssetCategory.IMAGE)

        assert asset.url.startswith("https://")
        assert asset.remote_id == "book-covers/asset1"
        storage_client.upload.assert_awaited_once_with(
            staged.path,
            folder="book-covers",
            resource_type="image",
            filename_override=staged.filename,
            format="png",
        )
        assert not staged.path.exists()

    @pytest.mark.asyncio
    async def test_image_without_subtype_keeps_original_format(self, assets, storage_client, make_staged):
        staged = make_staged("cover", content_type="image")

        await assets.transfer_staged(staged, AssetCategory.IMAGE)

        assert storage_client.upload.await_args.kwargs["format"] is None

    @pytest.mark.asyncio
    async def test_raw_document_upload(self, assets, storage_client, make_staged):
        staged = make_staged("dune.pdf", content_type="application/pdf")

        asset = await assets.transfer_staged(staged, AssetCategory.RAW_DOCUMENT)

        kwargs = storage_client.upload.await_args.kwargs
        assert kwargs["folder"] == "book-pdfs"
        assert kwargs["resource_type"] == "raw"
        assert kwargs["format"] == "pdf"
        assert asset.url.endswith(".pdf")
        assert not staged.path.exists()

    @pytest.mark.asyncio
    async def test_upload_failure_still_removes_staged_file(self, assets, storage_client, make_staged):
        storage_client.upload.side_effect = StorageError("Invalid image file")
        staged = make_staged()

        with pytest.raises(UploadFailed) as exc_info:
            await assets.transfer_staged(staged, AssetCategory.IMAGE)

        assert exc_info.value.message == "Invalid image file"
        assert exc_info.value.status_code == 500
        assert not staged.path.exists()

    @pytest.mark.asyncio
    async def test_upload_failure_without_message_uses_fallback(self, assets, storage_client, make_staged):
        storage_client.upload.side_effect = StorageError()

        with pytest.raises(UploadFailed) as exc_info:
            await assets.transfer_staged(make_staged("dune.pdf"), AssetCategory.RAW_DOCUMENT)

        assert exc_info.value.message == "Failed to upload book file to Cloudinary."

    @pytest.mark.asyncio
    async def test_staged_file_deletion_failure_is_not_raised(self, assets, make_staged):
        staged = make_staged()

        with patch("storage.assets.remove_staged_file", return_value=PermissionError("read-only")):
            asset = await assets.transfer_staged(staged, AssetCategory.IMAGE)

        assert asset.remote_id == "book-covers/asset1"

    @pytest.mark.asyncio
    async def test_deletion_failure_does_not_mask_upload_error(self, assets, storage_client, make_staged):
        storage_client.upload.side_effect = StorageError("quota exceeded")

        with patch("storage.assets.remove_staged_file", return_value=PermissionError("read-only")):
            with pytest.raises(UploadFailed, match="quota exceeded"):
                await assets.transfer_staged(make_staged(), AssetCategory.IMAGE)


class TestDiscard:
    """Best-effort deletion of remote assets."""

    @pytest.mark.asyncio
    async def test_prefers_stored_identifier(self, assets, storage_client):
        error = await assets.discard(
            "https://res.cloudinary.com/demo/image/upload/v1/book-covers/other.png",
            AssetCategory.IMAGE,
            remote_id="book-covers/stored"
        )

        assert error is None
        storage_client.destroy.assert_awaited_once_with("book-covers/stored", resource_type="image")

    @pytest.mark.asyncio
    async def test_falls_back_to_url(self, assets, storage_client):
        await assets.discard(
            "https://res.cloudinary.com/demo/raw/upload/v1/book-pdfs/dune.pdf",
            AssetCategory.RAW_DOCUMENT
        )

        storage_client.destroy.assert_awaited_once_with("book-pdfs/dune.pdf", resource_type="raw")

    @pytest.mark.asyncio
    async def test_returns_storage_error(self, assets, storage_client):
        storage_client.destroy.side_effect = StorageError("not found")

        error = await assets.discard(None, AssetCategory.IMAGE, remote_id="book-covers/x")

        assert isinstance(error, StorageError)

    @pytest.mark.asyncio
    async def test_nothing_to_delete(self, assets, storage_client):
        assert await assets.discard(None, AssetCategory.IMAGE) is None
        storage_client.destroy.assert_not_awaited()
