"""
Request-scoped accessors for the services created at startup.
"""

from fastapi import Request

from library.books import BookService
from library.insights import InsightService
from library.ratings import RatingService
from library.users import UserService
from storage.staging import StagingArea
from utilities.config import LibraryConfig


def get_config(request: Request) -> LibraryConfig:
    return request.app.state.config


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_book_service(request: Request) -> BookService:
    return request.app.state.book_service


def get_rating_service(request: Request) -> RatingService:
    return request.app.state.rating_service


def get_insight_service(request: Request) -> InsightService:
    return request.app.state.insight_service


def get_staging_area(request: Request) -> StagingArea:
    return request.app.state.staging
