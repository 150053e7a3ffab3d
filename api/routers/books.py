"""
Book endpoints: create, update, list, details, delete and like.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import JSONResponse

from api.auth import Caller, get_current_user
from api.dependencies import get_book_service, get_staging_area
from api.models import (
    BookEnvelope, BookListResponse, BookResponse,
    LikeResponse, MessageResponse, Pagination
)
from library.books import BookDraft, BookService
from storage.staging import StagingArea

router = APIRouter(prefix="/api/books", tags=["Books"])


@router.post("/add", response_model=BookEnvelope, status_code=status.HTTP_201_CREATED)
async def create_book(
    title: Optional[str] = Form(None),
    genre: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    file: Optional[UploadFile] = File(None),
    caller: Caller = Depends(get_current_user),
    books: BookService = Depends(get_book_service),
    staging: StagingArea = Depends(get_staging_area)
):
    """
    Create a book.

    - **coverImage**: cover image file (required)
    - **file**: book file (optional)
    """
    cover, body = await staging.stage_all(cover_image, file)
    book = await books.create(
        BookDraft(title=title, genre=genre, description=description),
        cover,
        body,
        caller.id
    )
    content = BookEnvelope(message="Book created successfully", book=BookResponse.model_validate(book))
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=content.to_response())


@router.patch("/update/{book_id}", response_model=BookEnvelope)
async def update_book(
    book_id: str,
    title: Optional[str] = Form(None),
    genre: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    file: Optional[UploadFile] = File(None),
    caller: Caller = Depends(get_current_user),
    books: BookService = Depends(get_book_service),
    staging: StagingArea = Depends(get_staging_area)
):
    """Update any subset of a book's fields; only the author may do so."""
    cover, body = await staging.stage_all(cover_image, file)
    book = await books.update(
        book_id,
        caller.id,
        BookDraft(title=title, genre=genre, description=description),
        cover,
        body
    )
    content = BookEnvelope(message="Book updated successfully", book=BookResponse.model_validate(book))
    return JSONResponse(content=content.to_response())


@router.get("", response_model=BookListResponse)
async def list_books(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    books: BookService = Depends(get_book_service)
):
    """
    List books, newest first.

    - **page**: Page number (default 1)
    - **limit**: Books per page (default 10)
    """
    result = await books.list_books(page, limit)
    content = BookListResponse(
        message="Books listed successfully",
        books=[BookResponse.model_validate(book) for book in result.books],
        pagination=Pagination(
            total_books=result.total_books,
            current_page=result.current_page,
            total_pages=result.total_pages,
            page_size=result.page_size,
        ),
    )
    return JSONResponse(content=content.to_response())


@router.get("/{book_id}", response_model=BookEnvelope)
async def book_details(book_id: str, books: BookService = Depends(get_book_service)):
    """Get a book; every call counts as a view."""
    book = await books.get_details(book_id)
    content = BookEnvelope(message="Book details fetched successfully", book=BookResponse.model_validate(book))
    return JSONResponse(content=content.to_response())


@router.delete("/{book_id}", response_model=MessageResponse)
async def delete_book(
    book_id: str,
    caller: Caller = Depends(get_current_user),
    books: BookService = Depends(get_book_service)
):
    await books.delete(book_id, caller.id)
    return JSONResponse(content=MessageResponse(message="Book deleted successfully").to_response())


@router.patch("/{book_id}/like", response_model=LikeResponse)
async def toggle_like(
    book_id: str,
    caller: Caller = Depends(get_current_user),
    books: BookService = Depends(get_book_service)
):
    """Like a book, or unlike it if the caller already does."""
    liked, book = await books.toggle_like(book_id, caller.id)
    content = LikeResponse(
        message="Book liked successfully" if liked else "Book unliked successfully",
        likes_count=len(book.get("likes", [])),
        book=BookResponse.model_validate(book),
    )
    return JSONResponse(content=content.to_response())
