"""
Pydantic document models for users, books and ratings.
Field aliases are the names stored in MongoDB.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """User roles; ``user`` is a reader."""
    USER = "user"
    AUTHOR = "author"


class Document(BaseModel):
    """Base for documents written to MongoDB."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    def to_mongo(self) -> Dict[str, Any]:
        """Dump the document with its stored field names."""
        return self.model_dump(by_alias=True)


class UserDocument(Document):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., description="bcrypt hash")
    role: Role = Field(default=Role.USER)


class BookDocument(Document):
    """
    Stored book. ``coverImageId`` and ``fileId`` keep the storage
    identifiers next to the public URLs.
    """
    title: str = Field(..., min_length=1)
    author: ObjectId
    description: str = Field(..., min_length=1)
    genre: str = Field(..., min_length=1)
    cover_image: str = Field(..., min_length=1, alias="coverImage")
    cover_image_id: Optional[str] = Field(None, alias="coverImageId")
    file: Optional[str] = None
    file_id: Optional[str] = Field(None, alias="fileId")
    views: int = Field(default=0, ge=0)
    likes: List[ObjectId] = Field(default_factory=list)


class RatingDocument(Document):
    book: ObjectId
    user: ObjectId
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)
