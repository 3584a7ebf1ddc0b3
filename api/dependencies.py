"""
Explicit service context handed to request handlers.

The context is built once in the application lifespan and stored on
``app.state``; handlers receive it through ``Depends(get_services)``.
"""

from typing import Any, Dict

from fastapi import Request

from store.books import CatalogStore
from store.database import MongoDBManager
from store.errors import ServerError
from store.reviews import ReviewStore
from store.users import IdentityStore
from utilities.config import AppConfig


class Services:
    """Stores sharing one database handle."""

    def __init__(self, manager: MongoDBManager, settings: AppConfig):
        self.manager = manager
        self.users = IdentityStore(
            manager.database,
            secret_key=settings.secret_key,
            algorithm=settings.algorithm,
            token_expire_minutes=settings.access_token_expire_minutes,
            hash_iterations=settings.password_hash_iterations,
        )
        self.books = CatalogStore(manager.database)
        self.reviews = ReviewStore(manager.database)

    async def health_check(self) -> Dict[str, Any]:
        return await self.manager.health_check()


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ServerError("Database service not available")
    return services
