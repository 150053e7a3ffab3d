"""
Ratings: add, delete and list per book or per author.
"""

from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError as DocumentValidationError
from pymongo.errors import PyMongoError

from .database import LibraryDatabase, parse_object_id
from .errors import NotFound, PersistenceError, ValidationError
from .models import RatingDocument

logger = structlog.get_logger(__name__)


def books_of_author_stages(author_id) -> List[Dict[str, Any]]:
    """Pipeline stages joining each rating to its book, kept for one author's books."""
    return [
        {
            "$lookup": {
                "from": "books",
                "localField": "book",
                "foreignField": "_id",
                "as": "book"
            }
        },
        {"$unwind": "$book"},
        {"$match": {"book.author": author_id}},
    ]


def reviewer_stages() -> List[Dict[str, Any]]:
    """Pipeline stages attaching the rating's author as ``reviewer``."""
    return [
        {
            "$lookup": {
                "from": "users",
                "localField": "user",
                "foreignField": "_id",
                "as": "reviewer"
            }
        },
        {"$unwind": "$reviewer"},
    ]


class RatingService:
    """Stores ratings and lists them per book or per author."""

    def __init__(self, db: LibraryDatabase):
        self.db = db

    async def add_rating(
        self,
        book_id: Optional[str],
        user_id: Optional[str],
        rating: Any,
        comment: Optional[str]
    ) -> Dict[str, Any]:
        """
        Store a rating. The 1-5 range is checked by the rating document
        model at write time; a violation is a persistence failure.
        """
        if not book_id or rating is None or not comment:
            raise ValidationError("Book ID, rating and comment are required.")
        book_oid = parse_object_id(book_id, "Book ID")
        user_oid = parse_object_id(user_id, "User ID")

        try:
            if await self.db.books.find_one({"_id": book_oid}, {"_id": 1}) is None:
                raise NotFound("Book not found.")

            try:
                document = RatingDocument(book=book_oid, user=user_oid, rating=rating, comment=comment).to_mongo()
            except DocumentValidationError as e:
                logger.error("Rating rejected by document schema", book_id=book_id, error=str(e))
                raise PersistenceError("Failed to add rating.") from e

            result = await self.db.ratings.insert_one(document)
            document["_id"] = result.inserted_id
            logger.info("Rating added", book_id=book_id, user_id=user_id, rating=document["rating"])
            return document
        except PyMongoError as e:
            logger.error("Failed to add rating", book_id=book_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to add rating.") from e

    async def delete_rating(self, book_id: str, rating_id: str, user_id: Optional[str]) -> int:
        """
        Delete the caller's rating on a book.

        Returns:
            Number of deleted ratings; zero is not an error
        """
        query = {
            "_id": parse_object_id(rating_id, "Rating ID"),
            "book": parse_object_id(book_id, "Book ID"),
            "user": parse_object_id(user_id, "User ID"),
        }
        try:
            result = await self.db.ratings.delete_one(query)
        except PyMongoError as e:
            logger.error("Failed to delete rating", rating_id=rating_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to delete rating.") from e

        logger.info("Rating delete requested", rating_id=rating_id, deleted=result.deleted_count)
        return result.deleted_count

    async def list_by_book(self, book_id: str) -> List[Dict[str, Any]]:
        """All ratings of a book, highest rating first."""
        book_oid = parse_object_id(book_id, "Book ID")
        try:
            cursor = self.db.ratings.find({"book": book_oid}, sort=[("rating", -1)])
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to list ratings", book_id=book_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to list ratings.") from e

    async def list_by_author(self, author_id: str) -> List[Dict[str, Any]]:
        """
        All ratings on an author's books, newest first, each with the
        reviewer's name and email and the book's id and title.
        """
        author_oid = parse_object_id(author_id, "Author ID")
        pipeline = books_of_author_stages(author_oid) + reviewer_stages() + [
            {"$sort": {"createdAt": -1}},
            {
                "$project": {
                    "_id": 1,
                    "rating": 1,
                    "comment": 1,
                    "createdAt": 1,
                    "bookId": "$book._id",
                    "bookTitle": "$book.title",
                    "reviewerName": "$reviewer.name",
                    "reviewerEmail": "$reviewer.email"
                }
            },
        ]
        try:
            return await self.db.ratings.aggregate(pipeline).to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to list author ratings", author_id=author_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to list author ratings.") from e
