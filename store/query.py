"""
Query building helpers shared by the stores.

Translates request parameters (filters, sort, field selection, pagination)
into MongoDB queries, and store documents into JSON-ready dictionaries.
"""

import math
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel, Field

from .errors import ValidationFailed

RESERVED_KEYS = frozenset({"page", "sort", "limit", "fields"})

# camelCase spellings used by older clients
FIELD_ALIASES = {
    "id": "_id",
    "createdAt": "created_at",
    "createdBy": "created_by",
    "publishedYear": "published_year",
}

INT_FIELDS = frozenset({"published_year", "rating"})
ID_FIELDS = frozenset({"_id", "created_by", "book", "user"})

DEFAULT_SORT = {"created_at": -1}
MAX_LIMIT = 100

# Largest $skip BSON can encode
MAX_SKIP = 2 ** 63 - 1


class Pagination(BaseModel):
    """Pagination envelope returned alongside any paged listing."""
    total: int = Field(..., ge=0, description="Total number of matching records")
    page: int = Field(..., ge=1, description="Current page number")
    pages: int = Field(..., ge=0, description="Total number of pages")
    limit: int = Field(..., ge=1, description="Records per page")


class Page(BaseModel):
    """One page of serialized records."""
    items: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: Pagination

    @property
    def count(self) -> int:
        return len(self.items)


def _field_name(name: str) -> str:
    name = name.strip()
    return FIELD_ALIASES.get(name, name)


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def parse_page_params(
    page: Any,
    limit: Any,
    default_limit: int,
    max_limit: int = MAX_LIMIT,
) -> Tuple[int, int]:
    """
    Resolve raw ``page``/``limit`` values.

    Missing, non-numeric or non-positive values fall back to page 1 and the
    operation's default limit. ``limit`` is capped at ``max_limit``. A page
    whose offset the store cannot represent is treated as invalid too.
    """
    size = min(_positive_int(limit, default_limit), max_limit)
    number = _positive_int(page, 1)
    if skip_for(number, size) > MAX_SKIP:
        number = 1
    return number, size


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(total=total, page=page, pages=math.ceil(total / limit), limit=limit)


def skip_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def parse_object_id(value: Any, message: str = "Invalid ID format") -> ObjectId:
    """Convert a path or filter value to an ObjectId, or fail validation."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationFailed(message)


def _coerce_filter_value(field: str, value: Any) -> Any:
    if field in ID_FIELDS:
        return parse_object_id(value, f"Invalid value for {field}")
    if field in INT_FIELDS:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationFailed(f"Invalid value for {field}")
    return value


def build_filters(params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Build an equality filter from query parameters.

    Reserved keys (page, sort, limit, fields) never become filters. Operator
    keys are refused so a query string cannot inject MongoDB operators.
    """
    filters = {}
    for key, value in params.items():
        if key in RESERVED_KEYS:
            continue
        if key.startswith("$") or "." in key:
            raise ValidationFailed(f"Invalid filter field: {key}")
        field = _field_name(key)
        filters[field] = _coerce_filter_value(field, value)
    return filters


def build_sort(sort: Optional[str]) -> Dict[str, int]:
    """
    Parse a comma-separated sort list; a leading ``-`` means descending.

    Defaults to newest first. ``_id`` is appended as a tie-breaker so pages
    stay stable when sort keys collide.
    """
    order = {}
    for part in (sort or "").split(","):
        part = part.strip()
        if not part or part == "-":
            continue
        direction = -1 if part.startswith("-") else 1
        field = _field_name(part.lstrip("-"))
        if field.startswith("$"):
            raise ValidationFailed(f"Invalid sort field: {field}")
        order[field] = direction
    if not order:
        order = dict(DEFAULT_SORT)
    order.setdefault("_id", order[next(iter(order))])
    return order


def build_projection(fields: Optional[str]) -> Optional[Dict[str, int]]:
    """Parse a comma-separated field list into a projection, ``_id`` always included."""
    if not fields:
        return None
    projection = {}
    for part in fields.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("$"):
            raise ValidationFailed(f"Invalid field: {part}")
        projection[_field_name(part)] = 1
    if not projection:
        return None
    projection["_id"] = 1
    return projection


def search_filter(text: str, fields: Sequence[str] = ("title", "author")) -> Dict[str, Any]:
    """Case-insensitive partial match of ``text`` against any of ``fields``."""
    pattern = re.escape(text.strip())
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}


def lookup_name(local_field: str, collection: str = "users", name_field: str = "name") -> List[Dict[str, Any]]:
    """
    Pipeline stages replacing a reference with ``{_id, <name_field>}``.

    Dangling references keep their id and get no name.
    """
    joined = f"_{local_field}_doc"
    return [
        {"$lookup": {
            "from": collection,
            "localField": local_field,
            "foreignField": "_id",
            "as": joined,
        }},
        {"$unwind": {"path": f"${joined}", "preserveNullAndEmptyArrays": True}},
        {"$set": {local_field: {"_id": f"${local_field}", name_field: f"${joined}.{name_field}"}}},
        {"$unset": joined},
    ]


async def fetch_page(
    collection: AsyncIOMotorCollection,
    match: Dict[str, Any],
    page: int,
    limit: int,
    sort: Optional[Dict[str, int]] = None,
    lookups: Sequence[Dict[str, Any]] = (),
    projection: Optional[Dict[str, int]] = None,
) -> Page:
    """Run a paged aggregation and count the full match."""
    pipeline = [
        {"$match": match},
        {"$sort": sort or build_sort(None)},
        {"$skip": skip_for(page, limit)},
        {"$limit": limit},
        *lookups,
    ]
    if projection:
        pipeline.append({"$project": projection})

    total = await collection.count_documents(match)
    docs = await collection.aggregate(pipeline).to_list(length=limit)
    return Page(
        items=[serialize(doc) for doc in docs],
        pagination=build_pagination(total, page, limit),
    )


def serialize(value: Any) -> Any:
    """
    Convert a store document to JSON-ready data.

    ObjectIds become strings, datetimes ISO-8601 strings, and ``_id`` is
    renamed to ``id`` at every level.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        result = {}
        for key, item in value.items():
            result["id" if key == "_id" else key] = serialize(item)
        return result
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    return value
