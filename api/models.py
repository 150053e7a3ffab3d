"""
API request and response schemas.

Field aliases are the JSON keys clients see; documents coming from MongoDB
validate directly into the response models.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _stringify_object_id(value: Any) -> Any:
    return str(value) if isinstance(value, ObjectId) else value


ObjectIdStr = Annotated[str, BeforeValidator(_stringify_object_id)]


class APIModel(BaseModel):
    """Base for API schemas."""

    model_config = ConfigDict(populate_by_name=True)

    def to_response(self) -> Dict[str, Any]:
        """JSON-ready dump using the public field names."""
        return self.model_dump(by_alias=True, mode="json")


# Requests

class RegisterRequest(APIModel):
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Unique email address")
    password: Optional[str] = Field(None, description="Plain-text password")
    role: Optional[str] = Field("user", description="user or author")


class LoginRequest(APIModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RatingRequest(APIModel):
    # Checked by the rating document at write time, not here.
    rating: Optional[Any] = Field(None, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Review text")


# Users

class UserSummary(APIModel):
    name: str
    email: str
    role: str


class AuthResponse(APIModel):
    access_token: str = Field(..., alias="accessToken")
    user: UserSummary


# Books

class AuthorSummary(APIModel):
    id: ObjectIdStr = Field(..., alias="_id")
    name: Optional[str] = None


class BookResponse(APIModel):
    """Book as returned to clients; the author is resolved when known."""
    id: ObjectIdStr = Field(..., alias="_id")
    title: str
    author: Union[AuthorSummary, ObjectIdStr]
    description: str
    genre: str
    cover_image: str = Field(..., alias="coverImage")
    file: Optional[str] = None
    views: int = 0
    likes: List[ObjectIdStr] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class BookEnvelope(APIModel):
    message: str
    book: BookResponse


class Pagination(APIModel):
    total_books: int = Field(..., alias="totalBooks")
    current_page: int = Field(..., alias="currentPage")
    total_pages: int = Field(..., alias="totalPages")
    page_size: int = Field(..., alias="pageSize")


class BookListResponse(APIModel):
    message: str
    books: List[BookResponse]
    pagination: Pagination


class LikeResponse(APIModel):
    message: str
    likes_count: int = Field(..., alias="likesCount")
    book: BookResponse


class MessageResponse(APIModel):
    message: str


# Ratings

class RatingResponse(APIModel):
    id: ObjectIdStr = Field(..., alias="_id")
    book: ObjectIdStr
    user: ObjectIdStr
    rating: int
    comment: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class AuthorRating(APIModel):
    id: ObjectIdStr = Field(..., alias="_id")
    rating: int
    comment: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    book_id: ObjectIdStr = Field(..., alias="bookId")
    book_title: str = Field(..., alias="bookTitle")
    reviewer_name: Optional[str] = Field(None, alias="reviewerName")
    reviewer_email: Optional[str] = Field(None, alias="reviewerEmail")


class AuthorRatingsResponse(APIModel):
    message: str
    ratings: List[AuthorRating]
    total_ratings: int = Field(..., alias="totalRatings")


# Insights

class AverageRatingResponse(APIModel):
    message: str
    average_rating: float = Field(..., alias="averageRating")
    total_ratings: int = Field(..., alias="totalRatings")


class HighestRatedBookResponse(APIModel):
    message: str
    highest_avg_rated_book: str = Field(..., alias="highestAvgRatedBook")
    average_rating: float = Field(..., alias="averageRating")


class RecentRating(APIModel):
    book_title: str = Field(..., alias="bookTitle")
    rating: int
    comment: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    reviewer_name: Optional[str] = Field(None, alias="reviewerName")
    reviewer_email: Optional[str] = Field(None, alias="reviewerEmail")


class RecentRatingResponse(APIModel):
    message: str
    recent_rating: Optional[RecentRating] = Field(None, alias="recentRating")


# Errors and health

class ErrorResponse(APIModel):
    """Error envelope; ``errorStack`` only outside production."""
    status: str = Field("error", description="Always 'error'")
    status_code: int = Field(..., alias="statusCode")
    message: str
    error_stack: Optional[str] = Field(None, alias="errorStack")

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class HealthResponse(APIModel):
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
