"""
Review store: one review per user per book, plus rating aggregation.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from .access import fetch_owned
from .database import BOOKS, REVIEWS
from .errors import Conflict, NotFound
from .models import ReviewInput, parse
from .query import Page, build_sort, fetch_page, lookup_name, parse_object_id, serialize

logger = structlog.get_logger(__name__)

ALREADY_REVIEWED = "You have already reviewed this book"

AUTHOR_LOOKUP = lookup_name("user")
BOOK_TITLE_LOOKUP = lookup_name("book", collection=BOOKS, name_field="title")


class ReviewStore:
    """Adds, edits, removes and lists reviews."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database[REVIEWS]
        self.books = database[BOOKS]

    async def _fetch(self, object_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Load one review with its author's name attached."""
        cursor = self.collection.aggregate([{"$match": {"_id": object_id}}, *AUTHOR_LOOKUP])
        docs = await cursor.to_list(length=1)
        return serialize(docs[0]) if docs else None

    async def _require_book(self, book_id: Any) -> ObjectId:
        object_id = parse_object_id(book_id, "Invalid book ID format")
        if await self.books.find_one({"_id": object_id}, {"_id": 1}) is None:
            raise NotFound(f"No book found with id {book_id}")
        return object_id

    async def add(self, book_id: Any, user_id: str, attrs: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Store a review of ``book_id`` by ``user_id``.

        The existence check is only a fast path; the unique (book, user) index
        decides when two submissions race.

        Raises:
            ValidationFailed: If the attributes break a rule
            NotFound: If the book does not exist
            Conflict: If the user already reviewed the book
        """
        review = parse(ReviewInput, attrs)
        book_oid = await self._require_book(book_id)
        user_oid = ObjectId(user_id)

        if await self.collection.find_one({"book": book_oid, "user": user_oid}, {"_id": 1}):
            raise Conflict(ALREADY_REVIEWED)

        doc = review.model_dump(exclude_none=True)
        doc.update(book=book_oid, user=user_oid, created_at=datetime.now(timezone.utc))
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            logger.warning("Concurrent duplicate review rejected", book_id=str(book_oid), user_id=user_id)
            raise Conflict(ALREADY_REVIEWED)

        logger.info("Review added", review_id=str(result.inserted_id), book_id=str(book_oid), user_id=user_id)
        return await self._fetch(result.inserted_id)

    async def update(self, review_id: Any, attrs: Mapping[str, Any], requester_id: str) -> Dict[str, Any]:
        """Re-validate and apply new attributes; only the author may update."""
        object_id = parse_object_id(review_id, "Invalid review ID format")
        review = parse(ReviewInput, attrs)
        existing = await fetch_owned(self.collection, object_id, requester_id, "user", "Review", "update")

        await self.collection.update_one({"_id": existing["_id"]}, {"$set": review.model_dump(exclude_none=True)})
        logger.info("Review updated", review_id=str(existing["_id"]), requester_id=requester_id)

        updated = await self._fetch(existing["_id"])
        if updated is None:
            raise NotFound(f"Review not found with id of {review_id}")
        return updated

    async def delete(self, review_id: Any, requester_id: str) -> None:
        """Remove a review; only the author may delete."""
        existing = await fetch_owned(self.collection, review_id, requester_id, "user", "Review", "delete")
        await self.collection.delete_one({"_id": existing["_id"]})
        logger.info("Review deleted", review_id=str(existing["_id"]), requester_id=requester_id)

    async def list_for_book(self, book_id: Any, page: int = 1, limit: int = 10) -> Page:
        """
        Reviews of one book, newest first, with author names.

        Raises:
            NotFound: If the book does not exist
        """
        book_oid = await self._require_book(book_id)
        return await fetch_page(
            self.collection,
            {"book": book_oid},
            page,
            limit,
            sort=build_sort(None),
            lookups=AUTHOR_LOOKUP,
        )

    async def list_all(self) -> List[Dict[str, Any]]:
        """Every review, newest first, with author name and book title. Unpaged."""
        pipeline = [{"$sort": build_sort(None)}, *AUTHOR_LOOKUP, *BOOK_TITLE_LOOKUP]
        docs = await self.collection.aggregate(pipeline).to_list(length=None)
        return [serialize(doc) for doc in docs]

    async def average_rating(self, book_id: Union[str, ObjectId]) -> float:
        """Mean rating of a book's reviews, 0 when it has none."""
        book_oid = parse_object_id(book_id, "Invalid book ID format")
        pipeline = [
            {"$match": {"book": book_oid}},
            {"$group": {"_id": None, "average": {"$avg": "$rating"}}},
        ]
        docs = await self.collection.aggregate(pipeline).to_list(length=1)
        if not docs or docs[0].get("average") is None:
            return 0
        return docs[0]["average"]
