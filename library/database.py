"""
MongoDB database utilities for async operations.
Handles connection, indexing and collection access for the e-library.
"""

from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure
import structlog

from .errors import ValidationError

logger = structlog.get_logger(__name__)


def parse_object_id(value: Any, label: str = "ID") -> ObjectId:
    """
    Convert a path or body value to an ObjectId.

    Raises:
        ValidationError: If the value is missing or not a valid ObjectId
    """
    if not value:
        raise ValidationError(f"{label} is required.")
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label} format.")


class LibraryDatabase:
    """
    Async MongoDB manager for the users, books and ratings collections.
    One instance lives for the whole process and shares its connection pool.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize the database manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    def from_database(cls, database: AsyncIOMotorDatabase, database_name: str = "") -> "LibraryDatabase":
        """Wrap an already opened database handle."""
        manager = cls(connection_url="", database_name=database_name)
        manager.database = database
        return manager

    @property
    def users(self) -> AsyncIOMotorCollection:
        return self.database["users"]

    @property
    def books(self) -> AsyncIOMotorCollection:
        return self.database["books"]

    @property
    def ratings(self) -> AsyncIOMotorCollection:
        return self.database["ratings"]

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self.create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def create_indexes(self) -> None:
        """Create indexes backing uniqueness and the common lookups."""
        try:
            await self.users.create_index("email", unique=True)

            await self.books.create_index("author")
            await self.books.create_index([("createdAt", DESCENDING)])

            await self.ratings.create_index("book")
            await self.ratings.create_index("user")
            await self.ratings.create_index([("book", ASCENDING), ("rating", DESCENDING)])

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            return {"status": "healthy"}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
