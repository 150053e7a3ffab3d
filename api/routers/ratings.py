"""
Rating endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.auth import Caller, get_current_user
from api.dependencies import get_rating_service
from api.models import AuthorRating, AuthorRatingsResponse, MessageResponse, RatingRequest, RatingResponse
from library.ratings import RatingService

router = APIRouter(prefix="/api/rate", tags=["Ratings"])


@router.post("/{book_id}", response_model=MessageResponse)
async def add_rating(
    book_id: str,
    payload: RatingRequest,
    caller: Caller = Depends(get_current_user),
    ratings: RatingService = Depends(get_rating_service)
):
    """
    Rate a book.

    - **rating**: integer from 1 to 5
    - **comment**: review text
    """
    await ratings.add_rating(book_id, caller.id, payload.rating, payload.comment)
    return JSONResponse(content=MessageResponse(message="Rating added successfully").to_response())


@router.delete("/{book_id}/{rating_id}", response_model=MessageResponse)
async def delete_rating(
    book_id: str,
    rating_id: str,
    caller: Caller = Depends(get_current_user),
    ratings: RatingService = Depends(get_rating_service)
):
    """Delete the caller's rating; succeeds even when nothing matched."""
    await ratings.delete_rating(book_id, rating_id, caller.id)
    return JSONResponse(content=MessageResponse(message="Rating deleted successfully").to_response())


@router.get("/book/{book_id}", response_model=List[RatingResponse])
async def book_ratings(
    book_id: str,
    caller: Caller = Depends(get_current_user),
    ratings: RatingService = Depends(get_rating_service)
):
    """All ratings of a book, highest first."""
    result = await ratings.list_by_book(book_id)
    return JSONResponse(content=[RatingResponse.model_validate(rating).to_response() for rating in result])


@router.get("/author/{author_id}", response_model=AuthorRatingsResponse)
async def author_ratings(
    author_id: str,
    caller: Caller = Depends(get_current_user),
    ratings: RatingService = Depends(get_rating_service)
):
    """All ratings on an author's books, newest first."""
    result = await ratings.list_by_author(author_id)
    content = AuthorRatingsResponse(
        message="Author ratings fetched successfully",
        ratings=[AuthorRating.model_validate(rating) for rating in result],
        total_ratings=len(result),
    )
    return JSONResponse(content=content.to_response())
