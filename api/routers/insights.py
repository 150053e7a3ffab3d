"""
Per-author rating insights. These endpoints are public.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_insight_service
from api.models import (
    AverageRatingResponse, HighestRatedBookResponse,
    RecentRating, RecentRatingResponse
)
from library.insights import InsightService

router = APIRouter(prefix="/api/insight", tags=["Insights"])


@router.get("/averageRating/{author_id}", response_model=AverageRatingResponse)
async def average_rating(author_id: str, insights: InsightService = Depends(get_insight_service)):
    result = await insights.average_rating(author_id)
    content = AverageRatingResponse(
        message="Average rating fetched successfully",
        average_rating=result.average_rating,
        total_ratings=result.total_ratings,
    )
    return JSONResponse(content=content.to_response())


# The path spelling is part of the published API.
@router.get("/heighestRatedBook/{author_id}", response_model=HighestRatedBookResponse)
async def highest_rated_book(author_id: str, insights: InsightService = Depends(get_insight_service)):
    result = await insights.highest_avg_rated_book(author_id)
    content = HighestRatedBookResponse(
        message="Highest average rated book fetched successfully",
        highest_avg_rated_book=result.book_id,
        average_rating=result.average_rating,
    )
    return JSONResponse(content=content.to_response())


@router.get("/recentRating/{author_id}", response_model=RecentRatingResponse)
async def recent_rating(author_id: str, insights: InsightService = Depends(get_insight_service)):
    result = await insights.most_recent_rating(author_id)
    content = RecentRatingResponse(
        message="Most recent rating fetched successfully",
        recent_rating=RecentRating.model_validate(result) if result else None,
    )
    return JSONResponse(content=content.to_response())
