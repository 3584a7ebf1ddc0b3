"""
MongoDB connection management.
Handles connection, health checks and the indexes every store relies on.
"""

from typing import Any, Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, TEXT
from pymongo.errors import ConnectionFailure

logger = structlog.get_logger(__name__)

USERS = "users"
BOOKS = "books"
REVIEWS = "reviews"


class MongoDBManager:
    """
    Async MongoDB manager owning the long-lived client.

    One instance is created at application startup and its database handle is
    passed to every store.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> AsyncIOMotorDatabase:
        """Establish connection to MongoDB and ensure indexes exist."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url, tz_aware=True)
            self.database = self.client[self.database_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()
            return self.database

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """
        Create indexes backing uniqueness rules and the common query patterns.
        Unique indexes are the final word on duplicate emails, ISBNs and reviews.
        """
        try:
            users = self.database[USERS]
            books = self.database[BOOKS]
            reviews = self.database[REVIEWS]

            await users.create_index("email", unique=True)

            # Text index on title and author for searching
            await books.create_index([("title", TEXT), ("author", TEXT)])
            # ISBN is optional, unique only when present
            await books.create_index("isbn", unique=True, sparse=True)
            await books.create_index([("created_at", DESCENDING)])
            await books.create_index("created_by")
            await books.create_index("genre")

            # One review per user per book
            await reviews.create_index([("book", ASCENDING), ("user", ASCENDING)], unique=True)
            await reviews.create_index([("book", ASCENDING), ("created_at", DESCENDING)])
            await reviews.create_index([("created_at", DESCENDING)])

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            return {
                "status": "healthy",
                "users_count": await self.database[USERS].estimated_document_count(),
                "books_count": await self.database[BOOKS].estimated_document_count(),
                "reviews_count": await self.database[REVIEWS].estimated_document_count(),
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
