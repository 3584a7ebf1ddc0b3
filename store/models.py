"""
Pydantic models for request data validation.

Each entity has a model carrying its rules and a pure ``validate_*`` function
returning the list of violated rules in field order. ``parse`` raises
``ValidationFailed`` with the first violation, which is what the API reports.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from .errors import ValidationFailed

ModelT = TypeVar("ModelT", bound=BaseModel)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ISBN10_PATTERN = re.compile(r"^(?:\d[- ]?){9}[\dXx]$")
ISBN13_PATTERN = re.compile(r"^(?:\d[- ]?){12}\d$")

RATING_MESSAGE = "Rating must be between 1 and 5"


class Genre(str, Enum):
    """Enumeration of accepted book genres."""
    FICTION = "Fiction"
    NON_FICTION = "Non-fiction"
    SCIENCE_FICTION = "Science Fiction"
    FANTASY = "Fantasy"
    MYSTERY = "Mystery"
    THRILLER = "Thriller"
    ROMANCE = "Romance"
    HORROR = "Horror"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    CHILDREN = "Children"
    YOUNG_ADULT = "Young Adult"
    SCIENCE = "Science"
    SELF_HELP = "Self-Help"
    OTHER = "Other"


GENRES = [genre.value for genre in Genre]


def _coerce_int(value: Any) -> int:
    """Accept ints and integer-looking strings or floats, reject everything else."""
    if isinstance(value, bool):
        raise ValueError("not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError("not an integer")


def _required_text(value: Optional[str], label: str, max_length: int, too_long: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{label} is required")
    value = value.strip()
    if len(value) > max_length:
        raise ValueError(too_long)
    return value


class SignupInput(BaseModel):
    """Signup payload."""
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Login email")
    password: Optional[str] = Field(None, description="Raw password, hashed before storage")

    model_config = {"validate_default": True, "extra": "ignore"}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required_text(v, "Name", 50, "Name cannot exceed 50 characters")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v is None or not v.strip():
            raise ValueError("Email is required")
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please provide a valid email")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if v is None or not v.strip():
            raise ValueError("Password is required")
        if len(v.strip()) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return v


class LoginInput(BaseModel):
    """Login payload."""
    email: Optional[str] = None
    password: Optional[str] = None

    model_config = {"validate_default": True, "extra": "ignore"}

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v is None or not v.strip():
            raise ValueError("Email is required")
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please provide a valid email")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if v is None or not v.strip():
            raise ValueError("Password is required")
        return v


class BookInput(BaseModel):
    """
    Book attributes accepted on create and update.

    Ownership and bookkeeping fields (``created_by``, ``created_at``, ``_id``)
    are not part of the model and are dropped if a client sends them.
    """
    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Author name")
    genre: Optional[str] = Field(None, description="One of the accepted genres")
    description: Optional[str] = Field(None, description="Book description")
    published_year: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("published_year", "publishedYear"),
        description="Year of publication",
    )
    isbn: Optional[str] = Field(None, description="ISBN-10 or ISBN-13")

    model_config = {
        "validate_default": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
        "json_schema_extra": {
            "example": {
                "title": "The Hobbit",
                "author": "J.R.R. Tolkien",
                "genre": "Fantasy",
                "description": "A hobbit is swept into a quest for dragon-guarded treasure.",
                "published_year": 1937,
                "isbn": "0-261-10221-4",
            }
        },
    }

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return _required_text(v, "Title", 200, "Title cannot exceed 200 characters")

    @field_validator("author")
    @classmethod
    def validate_author(cls, v):
        return _required_text(v, "Author", 100, "Author name cannot exceed 100 characters")

    @field_validator("genre")
    @classmethod
    def validate_genre(cls, v):
        if v is None or not v.strip():
            raise ValueError("Genre is required")
        if v not in GENRES:
            raise ValueError("Please select a valid genre")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        return _required_text(v, "Description", 2000, "Description cannot exceed 2000 characters")

    @field_validator("published_year", mode="before")
    @classmethod
    def validate_published_year(cls, v):
        if v is None:
            return None
        current_year = datetime.now(timezone.utc).year
        message = f"Published year must be between 0 and {current_year}"
        try:
            year = _coerce_int(v)
        except ValueError:
            raise ValueError(message)
        if not 0 <= year <= current_year:
            raise ValueError(message)
        return year

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v):
        if v is None:
            return None
        if not (ISBN10_PATTERN.match(v) or ISBN13_PATTERN.match(v)):
            raise ValueError("Please provide a valid ISBN")
        return v


class ReviewInput(BaseModel):
    """Review attributes accepted on create and update."""
    rating: int = Field(None, description="Rating from 1 to 5")
    title: Optional[str] = Field(None, description="Optional review headline")
    comment: Optional[str] = Field(None, description="Review body")

    model_config = {"validate_default": True, "str_strip_whitespace": True, "extra": "ignore"}

    @field_validator("rating", mode="before")
    @classmethod
    def validate_rating(cls, v):
        try:
            rating = _coerce_int(v)
        except ValueError:
            raise ValueError(RATING_MESSAGE)
        if not 1 <= rating <= 5:
            raise ValueError(RATING_MESSAGE)
        return rating

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is not None and len(v) > 100:
            raise ValueError("Title cannot exceed 100 characters")
        return v or None

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v):
        return _required_text(v, "Comment", 1000, "Comment cannot exceed 1000 characters")


class CurrentUser(BaseModel):
    """Authenticated identity resolved from a session token."""
    id: str = Field(..., description="User identifier")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Login email")
    created_at: Optional[datetime] = Field(None, description="Signup timestamp")


def violation_message(error: Dict[str, Any]) -> str:
    """Turn one pydantic error into the message reported to clients."""
    ctx = error.get("ctx") or {}
    if error.get("type") == "value_error" and "error" in ctx:
        return str(ctx["error"])
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error['msg']}" if location else error["msg"]


def collect_violations(model: Type[BaseModel], attrs: Any) -> List[str]:
    """Validate ``attrs`` against ``model`` and return every violated rule."""
    try:
        model.model_validate(attrs)
    except ValidationError as exc:
        return [violation_message(error) for error in exc.errors()]
    return []


def parse(model: Type[ModelT], attrs: Any) -> ModelT:
    """Validate ``attrs`` and return the model, or raise the first violation."""
    try:
        return model.model_validate(attrs)
    except ValidationError as exc:
        raise ValidationFailed(violation_message(exc.errors()[0]))


def validate_signup(attrs: Mapping[str, Any]) -> List[str]:
    return collect_violations(SignupInput, attrs)


def validate_login(attrs: Mapping[str, Any]) -> List[str]:
    return collect_violations(LoginInput, attrs)


def validate_book(attrs: Mapping[str, Any]) -> List[str]:
    return collect_violations(BookInput, attrs)


def validate_review(attrs: Mapping[str, Any]) -> List[str]:
    return collect_violations(ReviewInput, attrs)
