"""
Unit tests for request validation models.
Tests rule messages, ordering and normalization.
"""

from datetime import datetime, timezone

import pytest

from store.errors import ValidationFailed
from store.models import (
    BookInput,
    GENRES,
    ReviewInput,
    SignupInput,
    parse,
    validate_book,
    validate_login,
    validate_review,
    validate_signup,
)


class TestSignupValidation:
    """Test cases for signup rules."""

    def test_valid_signup(self):
        """Test that a complete payload has no violations."""
        assert validate_signup({"name": "Ada", "email": "ada@example.com", "password": "secret1"}) == []

    def test_email_is_normalized(self):
        """Test that emails are trimmed and lower-cased."""
        signup = parse(SignupInput, {"name": " Ada ", "email": " Ada@Example.COM ", "password": "secret1"})

        assert signup.email == "ada@example.com"
        assert signup.name == "Ada"

    def test_violations_in_field_order(self):
        """Test that every broken rule is reported, name first."""
        violations = validate_signup({"email": "not-an-email", "password": "123"})

        assert violations == [
            "Name is required",
            "Please provide a valid email",
            "Password must be at least 6 characters long",
        ]

    def test_long_name(self):
        """Test name length limit."""
        assert validate_signup({"name": "x" * 51, "email": "a@b.io", "password": "secret1"}) == [
            "Name cannot exceed 50 characters"
        ]


class TestLoginValidation:
    """Test cases for login rules."""

    def test_missing_fields(self):
        assert validate_login({}) == ["Email is required", "Password is required"]

    def test_valid_login(self):
        assert validate_login({"email": "ada@example.com", "password": "x"}) == []


class TestBookValidation:
    """Test cases for book rules."""

    def test_valid_book(self, book_payload):
        """Test creating valid book input."""
        book = parse(BookInput, book_payload)

        assert book.title == "The Hobbit"
        assert book.genre == "Fantasy"
        assert book.published_year == 1937

    def test_camel_case_published_year(self, book_payload):
        """Test that the camelCase spelling is accepted."""
        book_payload.pop("published_year")
        book_payload["publishedYear"] = "1937"

        assert parse(BookInput, book_payload).published_year == 1937

    def test_required_fields(self):
        """Test that missing fields are reported in order."""
        assert validate_book({}) == [
            "Title is required",
            "Author is required",
            "Genre is required",
            "Description is required",
        ]

    def test_first_violation_is_raised(self, book_payload):
        """Test that parse reports the first failing rule."""
        book_payload["genre"] = "Cookbooks"
        book_payload["isbn"] = "abc"

        with pytest.raises(ValidationFailed) as exc_info:
            parse(BookInput, book_payload)

        assert exc_info.value.message == "Please select a valid genre"
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("genre", GENRES)
    def test_every_genre_is_accepted(self, book_payload, genre):
        book_payload["genre"] = genre
        assert validate_book(book_payload) == []

    def test_future_published_year(self, book_payload):
        """Test that books cannot be published in the future."""
        year = datetime.now(timezone.utc).year
        book_payload["published_year"] = year + 1

        assert validate_book(book_payload) == [f"Published year must be between 0 and {year}"]

    def test_negative_published_year(self, book_payload):
        book_payload["published_year"] = -5
        assert len(validate_book(book_payload)) == 1

    @pytest.mark.parametrize("isbn", ["0261102214", "0-261-10221-4", "080442957X", "978-0-261-10221-7", "9780261102217"])
    def test_valid_isbns(self, book_payload, isbn):
        book_payload["isbn"] = isbn
        assert validate_book(book_payload) == []

    @pytest.mark.parametrize("isbn", ["12345", "ISBN0261102214", "978-0-261"])
    def test_invalid_isbns(self, book_payload, isbn):
        book_payload["isbn"] = isbn
        assert validate_book(book_payload) == ["Please provide a valid ISBN"]

    def test_ownership_fields_are_dropped(self, book_payload):
        """Test that clients cannot set the creator."""
        book_payload["created_by"] = "someone-else"
        book_payload["created_at"] = "2001-01-01"

        dumped = parse(BookInput, book_payload).model_dump(exclude_none=True)

        assert "created_by" not in dumped
        assert "created_at" not in dumped

    def test_optional_fields_omitted(self, book_payload):
        """Test that absent optional fields do not appear in stored data."""
        del book_payload["isbn"]
        del book_payload["published_year"]

        dumped = parse(BookInput, book_payload).model_dump(exclude_none=True)

        assert set(dumped) == {"title", "author", "genre", "description"}


class TestReviewValidation:
    """Test cases for review rules."""

    @pytest.mark.parametrize("rating", [0, 6, -1, "abc", None, 4.5, True])
    def test_rating_out_of_range(self, rating):
        """Test that ratings outside 1..5 are rejected."""
        violations = validate_review({"rating": rating, "comment": "Fine"})
        assert violations == ["Rating must be between 1 and 5"]

    @pytest.mark.parametrize("rating", [1, 5, "3", 4.0])
    def test_rating_in_range(self, rating):
        review = parse(ReviewInput, {"rating": rating, "comment": "Fine"})
        assert 1 <= review.rating <= 5
        assert isinstance(review.rating, int)

    def test_comment_required(self):
        assert validate_review({"rating": 3, "comment": "   "}) == ["Comment is required"]

    def test_long_comment(self):
        assert validate_review({"rating": 3, "comment": "x" * 1001}) == ["Comment cannot exceed 1000 characters"]

    def test_long_title(self):
        assert validate_review({"rating": 3, "comment": "ok", "title": "t" * 101}) == [
            "Title cannot exceed 100 characters"
        ]

    def test_rating_reported_first(self):
        """Test that the rating rule is checked before the others."""
        assert validate_review({})[0] == "Rating must be between 1 and 5"

    def test_not_a_mapping(self):
        """Test that non-object payloads fail validation instead of raising."""
        with pytest.raises(ValidationFailed):
            parse(ReviewInput, ["rating", 5])
