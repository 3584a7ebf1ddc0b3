"""
Catalog store: book records owned by the user who created them.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from .access import fetch_owned
from .database import BOOKS, REVIEWS
from .errors import Conflict, NotFound, ServerError, ValidationFailed
from .models import BookInput, parse
from .query import (
    Page,
    build_projection,
    build_sort,
    fetch_page,
    lookup_name,
    parse_object_id,
    search_filter,
    serialize,
)

logger = structlog.get_logger(__name__)

DUPLICATE_ISBN = "A book with this ISBN already exists"

CREATOR_LOOKUP = lookup_name("created_by")


class CatalogStore:
    """Creates, lists, searches, updates and deletes books."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database[BOOKS]
        self.reviews = database[REVIEWS]

    async def _fetch(self, object_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Load one book with its creator's name attached."""
        cursor = self.collection.aggregate([{"$match": {"_id": object_id}}, *CREATOR_LOOKUP])
        docs = await cursor.to_list(length=1)
        return serialize(docs[0]) if docs else None

    async def _ensure_isbn_free(self, isbn: Optional[str], exclude_id: Optional[ObjectId] = None) -> None:
        if not isbn:
            return
        query = {"isbn": isbn}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await self.collection.find_one(query, {"_id": 1}):
            raise Conflict(DUPLICATE_ISBN)

    async def create(self, attrs: Mapping[str, Any], owner_id: str) -> Dict[str, Any]:
        """
        Validate and store a new book owned by ``owner_id``.

        Raises:
            ValidationFailed: If the attributes break a rule
            Conflict: If the ISBN is already catalogued
        """
        book = parse(BookInput, attrs)
        await self._ensure_isbn_free(book.isbn)

        doc = book.model_dump(exclude_none=True)
        doc["created_at"] = datetime.now(timezone.utc)
        doc["created_by"] = ObjectId(owner_id)

        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise Conflict(DUPLICATE_ISBN)

        logger.info("Book created", book_id=str(result.inserted_id), owner_id=owner_id)
        return await self._fetch(result.inserted_id)

    async def list(
        self,
        filters: Dict[str, Any],
        sort: Optional[str] = None,
        fields: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        """
        List books matching field-equality ``filters``.

        Args:
            filters: Equality filters, already stripped of reserved keys
            sort: Comma-separated sort list, newest first when omitted
            fields: Comma-separated field selection
            page: Page number (1-based)
            limit: Books per page
        """
        try:
            return await fetch_page(
                self.collection,
                filters,
                page,
                limit,
                sort=build_sort(sort),
                lookups=CREATOR_LOOKUP,
                projection=build_projection(fields),
            )
        except PyMongoError as e:
            logger.error("Failed to list books", error=str(e), filters=str(filters))
            raise

    async def search(self, text: Optional[str], page: int = 1, limit: int = 10) -> Page:
        """Case-insensitive partial match on title or author."""
        if not text or not text.strip():
            raise ValidationFailed("Please provide a search query")
        try:
            return await fetch_page(
                self.collection,
                search_filter(text),
                page,
                limit,
                sort=build_sort(None),
                lookups=CREATOR_LOOKUP,
            )
        except PyMongoError as e:
            logger.error("Failed to search books", error=str(e), query=text)
            raise

    async def get_by_id(self, book_id: Any) -> Dict[str, Any]:
        """
        Get a single book with its creator's name.

        Raises:
            ValidationFailed: If the id is malformed
            NotFound: If there is no such book
        """
        object_id = parse_object_id(book_id, "Invalid book ID format")
        book = await self._fetch(object_id)
        if book is None:
            raise NotFound(f"Book not found with id of {book_id}")
        return book

    async def update(self, book_id: Any, attrs: Mapping[str, Any], requester_id: str) -> Dict[str, Any]:
        """
        Re-validate and apply new attributes; only the creator may update.

        Raises:
            ValidationFailed, NotFound, Forbidden, Conflict
        """
        object_id = parse_object_id(book_id, "Invalid book ID format")
        book = parse(BookInput, attrs)
        existing = await fetch_owned(self.collection, object_id, requester_id, "created_by", "Book", "update")
        await self._ensure_isbn_free(book.isbn, exclude_id=existing["_id"])

        try:
            await self.collection.update_one(
                {"_id": existing["_id"]},
                {"$set": book.model_dump(exclude_none=True)},
            )
        except DuplicateKeyError:
            raise Conflict(DUPLICATE_ISBN)

        logger.info("Book updated", book_id=str(existing["_id"]), requester_id=requester_id)
        updated = await self._fetch(existing["_id"])
        if updated is None:
            raise NotFound(f"Book not found with id of {book_id}")
        return updated

    async def delete(self, book_id: Any, requester_id: str) -> int:
        """
        Delete a book and every review of it; only the creator may delete.

        Returns:
            Number of reviews removed with the book

        Raises:
            ValidationFailed, NotFound, Forbidden
            ServerError: If the reviews went but the book could not be removed
        """
        existing = await fetch_owned(self.collection, book_id, requester_id, "created_by", "Book", "delete")
        object_id = existing["_id"]

        reviews_result = await self.reviews.delete_many({"book": object_id})
        try:
            result = await self.collection.delete_one({"_id": object_id})
        except PyMongoError as e:
            logger.error(
                "Book removal failed after its reviews were deleted",
                book_id=str(object_id),
                reviews_deleted=reviews_result.deleted_count,
                error=str(e),
            )
            raise ServerError(f"Reviews for book {object_id} were removed but the book could not be deleted")

        if result.deleted_count != 1:
            logger.error(
                "Book vanished before removal",
                book_id=str(object_id),
                reviews_deleted=reviews_result.deleted_count,
            )
            raise ServerError(f"Reviews for book {object_id} were removed but the book could not be deleted")

        logger.info(
            "Book deleted",
            book_id=str(object_id),
            reviews_deleted=reviews_result.deleted_count,
            requester_id=requester_id,
        )
        return reviews_result.deleted_count
