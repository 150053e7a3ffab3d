"""
Book lifecycle: create, update, list, read, delete and like.

Creation and update forward staged files to object storage before the book
is written. Staged files are removed on every exit path, and remote assets
that a request replaces or deletes are cleaned up best-effort.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from storage.assets import AssetCategory, AssetTransfer, RemoteAsset
from storage.staging import StagedFile, remove_staged_file
from .database import LibraryDatabase, parse_object_id
from .errors import Forbidden, NotFound, PersistenceError, Unauthorized, ValidationError
from .models import BookDocument, utcnow

logger = structlog.get_logger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10

# Public author fields attached to returned books.
AUTHOR_PROJECTION = {"name": 1}


@dataclass
class BookDraft:
    """Text fields of a create or update request; None means not sent."""
    title: Optional[str] = None
    genre: Optional[str] = None
    description: Optional[str] = None

    def changes(self) -> Dict[str, str]:
        return {
            field: value
            for field, value in (("title", self.title), ("genre", self.genre), ("description", self.description))
            if value
        }


@dataclass
class BookPage:
    books: List[Dict[str, Any]]
    total_books: int
    current_page: int
    total_pages: int
    page_size: int


def parse_page_param(value: Any, default: int) -> int:
    """Positive integer from a query value, ``default`` when absent or not numeric."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


class BookService:
    """Coordinates asset transfers with book persistence."""

    def __init__(self, db: LibraryDatabase, assets: AssetTransfer):
        self.db = db
        self.assets = assets

    async def create(
        self,
        draft: BookDraft,
        cover: Optional[StagedFile],
        body: Optional[StagedFile],
        caller_id: Optional[str]
    ) -> Dict[str, Any]:
        """
        Upload the cover (and optional body file) and store a new book.

        Args:
            draft: Title, genre and description, all required
            cover: Staged cover image, required
            body: Staged book file, optional
            caller_id: Authenticated author

        Returns:
            The stored book with its author resolved
        """
        try:
            if not draft.title or not draft.genre or not draft.description:
                raise ValidationError("Title, genre and description are required.")
            if cover is None:
                raise ValidationError("Cover image is required.")
            if not caller_id:
                raise Unauthorized("Unauthorized: User ID missing in request.")
            author_id = parse_object_id(caller_id, "User ID")

            cover_asset = await self.assets.transfer_staged(cover, AssetCategory.IMAGE)
            body_asset = None
            if body is not None:
                body_asset = await self.assets.transfer_staged(body, AssetCategory.RAW_DOCUMENT)

            book = BookDocument(
                title=draft.title,
                genre=draft.genre,
                description=draft.description,
                author=author_id,
                cover_image=cover_asset.url,
                cover_image_id=cover_asset.remote_id,
                file=body_asset.url if body_asset else None,
                file_id=body_asset.remote_id if body_asset else None,
            ).to_mongo()

            result = await self.db.books.insert_one(book)
            book["_id"] = result.inserted_id
            logger.info("Book created", book_id=str(book["_id"]), author=caller_id)
            return await self._with_author(book)

        except PyMongoError as e:
            logger.error("Failed to create book", author=caller_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to create book.") from e
        finally:
            self._remove_staged(cover, body)

    async def update(
        self,
        book_id: str,
        caller_id: Optional[str],
        draft: BookDraft,
        cover: Optional[StagedFile] = None,
        body: Optional[StagedFile] = None
    ) -> Dict[str, Any]:
        """
        Apply a partial update. New assets replace the old ones, which are
        deleted from storage once the book points at the replacements. If the
        update fails before that, the replacements are deleted instead.
        """
        replacements: List[Tuple[RemoteAsset, AssetCategory]] = []
        persisted = False
        try:
            book_oid = parse_object_id(book_id, "Book ID")
            book = await self._get_owned_book(book_oid, caller_id)

            changes: Dict[str, Any] = draft.changes()
            stale: List[Tuple[Optional[str], AssetCategory, Optional[str]]] = []

            if cover is not None:
                asset = await self.assets.transfer_staged(cover, AssetCategory.IMAGE)
                replacements.append((asset, AssetCategory.IMAGE))
                changes["coverImage"] = asset.url
                changes["coverImageId"] = asset.remote_id
                if book.get("coverImage"):
                    stale.append((book["coverImage"], AssetCategory.IMAGE, book.get("coverImageId")))

            if body is not None:
                asset = await self.assets.transfer_staged(body, AssetCategory.RAW_DOCUMENT)
                replacements.append((asset, AssetCategory.RAW_DOCUMENT))
                changes["file"] = asset.url
                changes["fileId"] = asset.remote_id
                if book.get("file"):
                    stale.append((book["file"], AssetCategory.RAW_DOCUMENT, book.get("fileId")))

            changes["updatedAt"] = utcnow()
            updated = await self.db.books.find_one_and_update(
                {"_id": book_oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER
            )
            if updated is None:
                raise NotFound("Book not found.")
            persisted = True

            for url, category, remote_id in stale:
                await self._discard_asset(url, category, remote_id)

            logger.info("Book updated", book_id=book_id, fields=sorted(changes))
            return await self._with_author(updated)

        except PyMongoError as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to update book.") from e
        finally:
            if not persisted:
                for asset, category in replacements:
                    await self._discard_asset(asset.url, category, asset.remote_id)
            self._remove_staged(cover, body)

    async def list_books(self, page: Any = None, page_size: Any = None) -> BookPage:
        """List books newest first, one page at a time."""
        page = parse_page_param(page, DEFAULT_PAGE)
        page_size = parse_page_param(page_size, DEFAULT_PAGE_SIZE)
        skip = (page - 1) * page_size

        try:
            total = await self.db.books.count_documents({})
            cursor = self.db.books.find({}, sort=[("createdAt", -1)], skip=skip, limit=page_size)
            books = await cursor.to_list(length=page_size)
            books = await self._with_authors(books)
        except PyMongoError as e:
            logger.error("Failed to list books", page=page, page_size=page_size, error=str(e))
            raise PersistenceError(str(e) or "Failed to list books.") from e

        return BookPage(
            books=books,
            total_books=total,
            current_page=page,
            total_pages=math.ceil(total / page_size),
            page_size=page_size,
        )

    async def get_details(self, book_id: str) -> Dict[str, Any]:
        """Return a book and count the read as a view."""
        book_oid = parse_object_id(book_id, "Book ID")
        try:
            book = await self.db.books.find_one_and_update(
                {"_id": book_oid},
                {"$inc": {"views": 1}},
                return_document=ReturnDocument.AFTER
            )
            if book is None:
                raise NotFound("Book not found.")
            return await self._with_author(book)
        except PyMongoError as e:
            logger.error("Failed to get book details", book_id=book_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to get book details.") from e

    async def delete(self, book_id: str, caller_id: Optional[str]) -> None:
        """
        Delete a book owned by the caller. Remote assets go first so a
        failure part-way leaves a record pointing at missing assets rather
        than unreferenced assets in storage.
        """
        book_oid = parse_object_id(book_id, "Book ID")
        try:
            book = await self._get_owned_book(book_oid, caller_id)

            if book.get("coverImage"):
                await self._discard_asset(book["coverImage"], AssetCategory.IMAGE, book.get("coverImageId"))
            if book.get("file"):
                await self._discard_asset(book["file"], AssetCategory.RAW_DOCUMENT, book.get("fileId"))

            await self.db.books.delete_one({"_id": book_oid})
            logger.info("Book deleted", book_id=book_id, author=caller_id)
        except PyMongoError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to delete book.") from e

    async def toggle_like(self, book_id: str, caller_id: Optional[str]) -> Tuple[bool, Dict[str, Any]]:
        """
        Like the book, or unlike it when the caller already likes it.

        Returns:
            (liked, book) where ``liked`` is the caller's new state
        """
        book_oid = parse_object_id(book_id, "Book ID")
        user_oid = parse_object_id(caller_id, "User ID")
        try:
            book = await self.db.books.find_one({"_id": book_oid})
            if book is None:
                raise NotFound("Book not found.")

            likes = list(book.get("likes", []))
            has_liked = user_oid in likes
            if has_liked:
                likes = [liker for liker in likes if liker != user_oid]
            else:
                likes.append(user_oid)

            # Read-modify-write: concurrent toggles by the same user may race.
            await self.db.books.update_one({"_id": book_oid}, {"$set": {"likes": likes}})
            book["likes"] = likes
            logger.info("Book like toggled", book_id=book_id, user_id=caller_id, liked=not has_liked)
            return not has_liked, await self._with_author(book)
        except PyMongoError as e:
            logger.error("Failed to update like", book_id=book_id, error=str(e))
            raise PersistenceError(str(e) or "Failed to update like count.") from e

    async def _get_owned_book(self, book_oid: ObjectId, caller_id: Optional[str]) -> Dict[str, Any]:
        book = await self.db.books.find_one({"_id": book_oid})
        if book is None:
            raise NotFound("Book not found.")
        if not caller_id or str(book["author"]) != str(caller_id):
            raise Forbidden("Forbidden: You are not the author of this book.")
        return book

    async def _discard_asset(self, url: Optional[str], category: AssetCategory, remote_id: Optional[str]) -> None:
        error = await self.assets.discard(url, category, remote_id)
        if error:
            logger.warning("Failed to delete remote asset", url=url, category=category.value, error=str(error))

    def _remove_staged(self, *staged_files: Optional[StagedFile]) -> None:
        for staged in staged_files:
            if staged is None:
                continue
            error = remove_staged_file(staged.path)
            if error:
                logger.warning("Failed to delete local file", path=str(staged.path), error=str(error))

    async def _with_author(self, book: Dict[str, Any]) -> Dict[str, Any]:
        return (await self._with_authors([book]))[0]

    async def _with_authors(self, books: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Replace each author id by ``{_id, name}``."""
        books = list(books)
        author_ids = list({book["author"] for book in books if isinstance(book.get("author"), ObjectId)})
        if not author_ids:
            return books

        cursor = self.db.users.find({"_id": {"$in": author_ids}}, AUTHOR_PROJECTION)
        authors = {user["_id"]: user for user in await cursor.to_list(length=None)}
        for book in books:
            author = authors.get(book.get("author"))
            if author:
                book["author"] = {"_id": author["_id"], "name": author.get("name")}
        return books
