"""
Resource ownership checks shared by the catalog and review stores.
"""

from typing import Any, Dict, Mapping

import structlog
from motor.motor_asyncio import AsyncIOMotorCollection

from .errors import Forbidden, NotFound
from .query import parse_object_id

logger = structlog.get_logger(__name__)


def ensure_owner(
    resource: Mapping[str, Any],
    requester_id: str,
    owner_field: str,
    message: str = "Not authorized to modify this resource",
) -> None:
    """
    Raise ``Forbidden`` unless ``resource[owner_field]`` is the requester.

    Args:
        resource: Store document
        requester_id: Authenticated user id
        owner_field: Field holding the owning user's id
        message: Error message reported to the client
    """
    owner = resource.get(owner_field)
    if owner is None or str(owner) != str(requester_id):
        logger.warning(
            "Ownership check failed",
            resource_id=str(resource.get("_id")),
            owner_field=owner_field,
            requester_id=str(requester_id),
        )
        raise Forbidden(message)


async def fetch_owned(
    collection: AsyncIOMotorCollection,
    resource_id: Any,
    requester_id: str,
    owner_field: str,
    label: str,
    action: str = "modify",
) -> Dict[str, Any]:
    """
    Load a resource the requester is about to change.

    Raises:
        ValidationFailed: If the id is malformed
        NotFound: If no document has that id
        Forbidden: If the requester does not own it
    """
    object_id = parse_object_id(resource_id, f"Invalid {label.lower()} ID format")
    resource = await collection.find_one({"_id": object_id})
    if resource is None:
        raise NotFound(f"{label} not found with id of {resource_id}")
    ensure_owner(resource, requester_id, owner_field, f"Not authorized to {action} this {label.lower()}")
    return resource
