"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from store.query import Page, build_pagination


def make_cursor(docs):
    """Stand-in for a motor aggregation cursor."""
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=list(docs))
    return cursor


def make_collection():
    """Stand-in for an AsyncIOMotorCollection."""
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.update_one = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.delete_many = AsyncMock()
    collection.count_documents = AsyncMock(return_value=0)
    collection.create_index = AsyncMock()
    collection.estimated_document_count = AsyncMock(return_value=0)
    collection.aggregate = MagicMock(return_value=make_cursor([]))
    return collection


@pytest.fixture
def cursor():
    """Factory for aggregation cursors returning the given documents."""
    return make_cursor


@pytest.fixture
def collections():
    """Mock collections keyed by name."""
    return {
        "users": make_collection(),
        "books": make_collection(),
        "reviews": make_collection(),
    }


@pytest.fixture
def mock_database(collections):
    """Mock AsyncIOMotorDatabase resolving collections by name."""
    database = MagicMock()
    database.__getitem__.side_effect = collections.__getitem__
    database.command = AsyncMock(return_value={"ok": 1})
    return database


@pytest.fixture
def owner_id():
    return str(ObjectId())


@pytest.fixture
def other_user_id():
    return str(ObjectId())


@pytest.fixture
def book_payload():
    """Valid book attributes."""
    return {
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "genre": "Fantasy",
        "description": "A hobbit is swept into a quest for dragon-guarded treasure.",
        "published_year": 1937,
        "isbn": "0-261-10221-4",
    }


@pytest.fixture
def review_payload():
    """Valid review attributes."""
    return {"title": "Timeless", "rating": 5, "comment": "Still a joy to read."}


@pytest.fixture
def book_doc(owner_id):
    """Stored book document as returned by the creator lookup."""
    return {
        "_id": ObjectId(),
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "genre": "Fantasy",
        "description": "A hobbit is swept into a quest for dragon-guarded treasure.",
        "published_year": 1937,
        "isbn": "0-261-10221-4",
        "created_at": datetime(2024, 1, 15, 10, 30),
        "created_by": ObjectId(owner_id),
    }


@pytest.fixture
def empty_page():
    return Page(items=[], pagination=build_pagination(0, 1, 10))
