"""
Per-author rating insights computed with aggregation pipelines.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from pymongo.errors import PyMongoError

from .database import LibraryDatabase, parse_object_id
from .errors import PersistenceError
from .ratings import books_of_author_stages, reviewer_stages

logger = structlog.get_logger(__name__)


@dataclass
class AverageRating:
    average_rating: float
    total_ratings: int


@dataclass
class TopRatedBook:
    """Book with the best mean rating; ``book_id`` is empty when none exists."""
    book_id: str
    average_rating: float


class InsightService:
    """Read-only statistics over ratings of an author's books."""

    def __init__(self, db: LibraryDatabase):
        self.db = db

    async def _aggregate(self, pipeline, operation: str, author_id: str):
        try:
            return await self.db.ratings.aggregate(pipeline).to_list(length=None)
        except PyMongoError as e:
            logger.error("Insight aggregation failed", operation=operation, author_id=author_id, error=str(e))
            raise PersistenceError(str(e) or f"Failed to get {operation}.") from e

    async def average_rating(self, author_id: str) -> AverageRating:
        """Mean rating and rating count across the author's books; zeros when unrated."""
        author_oid = parse_object_id(author_id, "Author ID")
        pipeline = books_of_author_stages(author_oid) + [
            {
                "$group": {
                    "_id": None,
                    "averageRating": {"$avg": "$rating"},
                    "totalRatings": {"$sum": 1}
                }
            }
        ]
        result = await self._aggregate(pipeline, "average rating", author_id)
        if not result:
            return AverageRating(average_rating=0, total_ratings=0)
        return AverageRating(
            average_rating=result[0].get("averageRating") or 0,
            total_ratings=result[0].get("totalRatings") or 0,
        )

    async def highest_avg_rated_book(self, author_id: str) -> TopRatedBook:
        """
        Book with the highest mean rating. Exact ties resolve to whichever
        book the sort stage yields first.
        """
        author_oid = parse_object_id(author_id, "Author ID")
        pipeline = books_of_author_stages(author_oid) + [
            {
                "$group": {
                    "_id": "$book._id",
                    "averageRating": {"$avg": "$rating"}
                }
            },
            {"$sort": {"averageRating": -1}},
            {"$limit": 1},
        ]
        result = await self._aggregate(pipeline, "highest average rated book", author_id)
        if not result:
            return TopRatedBook(book_id="", average_rating=0)
        return TopRatedBook(
            book_id=str(result[0]["_id"]),
            average_rating=result[0].get("averageRating") or 0,
        )

    async def most_recent_rating(self, author_id: str) -> Optional[Dict[str, Any]]:
        author_oid = parse_object_id(author_id, "Author ID")
        pipeline = books_of_author_stages(author_oid) + reviewer_stages() + [
            {"$sort": {"createdAt": -1}},
            {"$limit": 1},
            {
                "$project": {
                    "_id": 0,
                    "bookTitle": "$book.title",
                    "rating": 1,
                    "comment": 1,
                    "createdAt": 1,
                    "reviewerName": "$reviewer.name",
                    "reviewerEmail": "$reviewer.email"
                }
            },
        ]
        result = await self._aggregate(pipeline, "most recent rating", author_id)
        return result[0] if result else None
