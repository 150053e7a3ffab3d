"""
Pytest configuration and shared fixtures.
"""

import itertools
import uuid
from unittest.mock import AsyncMock

import pytest
from mongomock_motor import AsyncMongoMockClient

from library.books import BookService
from library.database import LibraryDatabase
from library.insights import InsightService
from library.models import UserDocument
from library.ratings import RatingService
from storage.assets import AssetTransfer
from storage.cloudinary import CloudinaryClient
from storage.staging import StagedFile


@pytest.fixture
def library_db():
    """In-memory MongoDB wrapped like the real database."""
    database = AsyncMongoMockClient()["elib_test"]
    return LibraryDatabase.from_database(database, "elib_test")


@pytest.fixture
def storage_client():
    """Mock object storage that hands out a fresh URL per upload."""
    client = AsyncMock(spec=CloudinaryClient)
    counter = itertools.count(1)

    async def upload(file_path, folder, resource_type="image", filename_override=None, format=None):
        public_id = f"{folder}/asset{next(counter)}"
        extension = f".{format}" if format else ""
        return {
            "secure_url": f"https://res.cloudinary.com/demo/{resource_type}/upload/v1/{public_id}{extension}",
            "public_id": public_id,
        }

    client.upload.side_effect = upload
    client.destroy.return_value = {"result": "ok"}
    return client


@pytest.fixture
def assets(storage_client):
    return AssetTransfer(storage_client, "book-covers", "book-pdfs")


@pytest.fixture
def book_service(library_db, assets):
    return BookService(library_db, assets)


@pytest.fixture
def rating_service(library_db):
    return RatingService(library_db)


@pytest.fixture
def insight_service(library_db):
    return InsightService(library_db)


@pytest.fixture
def make_staged(tmp_path):
    """Write a file into a temporary staging directory."""
    def _make(name="cover.png", content=b"image-bytes", content_type="image/png"):
        path = tmp_path / f"{uuid.uuid4().hex}-{name}"
        path.write_bytes(content)
        return StagedFile(path=path, filename=path.name, content_type=content_type)
    return _make


@pytest.fixture
def create_user(library_db):
    """Insert a user directly and return its id."""
    async def _create(name="Ada", email=None, role="author"):
        document = UserDocument(
            name=name,
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            password="not-a-real-hash",
            role=role
        ).to_mongo()
        result = await library_db.users.insert_one(document)
        return result.inserted_id
    return _create
