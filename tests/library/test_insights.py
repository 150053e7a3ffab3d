"""
Tests for per-author rating insights.
"""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from library.errors import ValidationError
from library.models import BookDocument, RatingDocument

START = datetime(2024, 3, 1, tzinfo=timezone.utc)


async def insert_book(library_db, author_id, title):
    document = BookDocument(
        title=title,
        genre="Fantasy",
        description="A book.",
        author=author_id,
        cover_image="https://res.cloudinary.com/demo/image/upload/v1/book-covers/c.png",
    ).to_mongo()
    return (await library_db.books.insert_one(document)).inserted_id


async def rate(library_db, book_id, user_id, value, minutes=0, comment="ok"):
    document = RatingDocument(
        book=book_id,
        user=user_id,
        rating=value,
        comment=comment,
        created_at=START + timedelta(minutes=minutes),
    ).to_mongo()
    return (await library_db.ratings.insert_one(document)).inserted_id


class TestAverageRating:

    @pytest.mark.asyncio
    async def test_unrated_author(self, insight_service, create_user):
        author_id = await create_user()

        result = await insight_service.average_rating(str(author_id))

        assert result.average_rating == 0
        assert result.total_ratings == 0

    @pytest.mark.asyncio
    async def test_average_across_books(self, insight_service, library_db, create_user):
        author_id = await create_user()
        reader_id = await create_user(role="user")
        first = await insert_book(library_db, author_id, "First")
        second = await insert_book(library_db, author_id, "Second")
        await rate(library_db, first, reader_id, 5)
        await rate(library_db, first, reader_id, 4)
        await rate(library_db, second, reader_id, 3)

        result = await insight_service.average_rating(str(author_id))

        assert result.average_rating == pytest.approx(4.0)
        assert result.total_ratings == 3

    @pytest.mark.asyncio
    async def test_back_to_zero_after_rating_removed(self, insight_service, rating_service, library_db, create_user):
        author_id = await create_user()
        reader_id = await create_user(role="user")
        book_id = await insert_book(library_db, author_id, "Only")
        rating = await rating_service.add_rating(str(book_id), str(reader_id), 5, "Loved it")

        before = await insight_service.average_rating(str(author_id))
        await rating_service.delete_rating(str(book_id), str(rating["_id"]), str(reader_id))
        after = await insight_service.average_rating(str(author_id))

        assert (before.average_rating, before.total_ratings) == (5, 1)
        assert (after.average_rating, after.total_ratings) == (0, 0)

    @pytest.mark.asyncio
    async def test_other_authors_are_excluded(self, insight_service, library_db, create_user):
        author_id = await create_user()
        other_id = await create_user(name="Other")
        reader_id = await create_user(role="user")
        await rate(library_db, await insert_book(library_db, author_id, "Mine"), reader_id, 2)
        await rate(library_db, await insert_book(library_db, other_id, "Theirs"), reader_id, 5)

        result = await insight_service.average_rating(str(author_id))

        assert result.average_rating == pytest.approx(2.0)
        assert result.total_ratings == 1

    @pytest.mark.asyncio
    async def test_malformed_author_id(self, insight_service):
        with pytest.raises(ValidationError):
            await insight_service.average_rating("bad")


class TestHighestRatedBook:

    @pytest.mark.asyncio
    async def test_unrated_author(self, insight_service):
        result = await insight_service.highest_avg_rated_book(str(ObjectId()))

        assert result.book_id == ""
        assert result.average_rating == 0

    @pytest.mark.asyncio
    async def test_best_mean_wins(self, insight_service, library_db, create_user):
        author_id = await create_user()
        reader_id = await create_user(role="user")
        good = await insert_book(library_db, author_id, "Good")
        poor = await insert_book(library_db, author_id, "Poor")
        await rate(library_db, good, reader_id, 5)
        await rate(library_db, good, reader_id, 5)
        await rate(library_db, poor, reader_id, 1)

        result = await insight_service.highest_avg_rated_book(str(author_id))

        assert result.book_id == str(good)
        assert result.average_rating == pytest.approx(5.0)


class TestMostRecentRating:

    @pytest.mark.asyncio
    async def test_no_ratings(self, insight_service):
        assert await insight_service.most_recent_rating(str(ObjectId())) is None

    @pytest.mark.asyncio
    async def test_latest_rating_with_reviewer(self, insight_service, library_db, create_user):
        author_id = await create_user()
        other_id = await create_user(name="Other")
        reader_id = await create_user(name="Reader", email="reader@example.com", role="user")
        book_id = await insert_book(library_db, author_id, "Dune")
        await rate(library_db, book_id, reader_id, 3, minutes=0, comment="first")
        await rate(library_db, book_id, reader_id, 4, minutes=10, comment="second")
        # Newer, but on another author's book.
        await rate(library_db, await insert_book(library_db, other_id, "Theirs"), reader_id, 1, minutes=20)

        result = await insight_service.most_recent_rating(str(author_id))

        assert result["comment"] == "second"
        assert result["rating"] == 4
        assert result["bookTitle"] == "Dune"
        assert result["reviewerName"] == "Reader"
        assert result["reviewerEmail"] == "reader@example.com"
        assert "_id" not in result
