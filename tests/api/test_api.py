"""
Tests for the FastAPI application.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.dependencies import get_services
from api.main import app
from store.books import CatalogStore
from store.errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationFailed
from store.models import CurrentUser
from store.reviews import ReviewStore
from store.users import IdentityStore, Session
from utilities.config import config as app_settings

TOKEN = "header.payload.signature"
AUTH = {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def current_user():
    return CurrentUser(id=str(ObjectId()), name="Ada", email="ada@example.com", created_at=datetime(2024, 1, 1))


@pytest.fixture
def services(current_user):
    """Service context with every store mocked."""
    mock = MagicMock()
    mock.users = AsyncMock(spec=IdentityStore)
    mock.books = AsyncMock(spec=CatalogStore)
    mock.reviews = AsyncMock(spec=ReviewStore)
    mock.users.verify_token.return_value = current_user
    mock.health_check = AsyncMock(return_value={"status": "healthy"})
    return mock


@pytest.fixture
def client(services):
    """Create test client wired to the mocked services."""
    app.dependency_overrides[get_services] = lambda: services
    app.state.services = services
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
    del app.state.services


def test_welcome(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Welcome to Book Review API"


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database_status"] == "healthy"
    assert "timestamp" in data
    assert "version" in data


def test_unknown_route(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found: /api/nothing-here"}


class TestAuthRoutes:
    """Test cases for signup, login and identity."""

    def test_signup(self, client, services, current_user):
        services.users.register.return_value = Session(user=current_user, token=TOKEN)

        response = client.post("/api/signup", json={"name": "Ada", "email": "ada@example.com", "password": "secret1"})

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["token"] == TOKEN
        assert data["user"] == {"id": current_user.id, "name": "Ada", "email": "ada@example.com"}
        services.users.register.assert_awaited_once_with("Ada", "ada@example.com", "secret1")

    def test_signup_duplicate_email(self, client, services):
        services.users.register.side_effect = Conflict("Email already in use")

        response = client.post("/api/signup", json={"name": "Ada", "email": "ada@example.com", "password": "secret1"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Email already in use"}

    def test_signup_validation_error(self, client, services):
        services.users.register.side_effect = ValidationFailed("Password must be at least 6 characters long")

        response = client.post("/api/signup", json={"name": "Ada", "email": "ada@example.com", "password": "123"})

        assert response.status_code == 400
        assert response.json()["message"] == "Password must be at least 6 characters long"

    def test_malformed_json(self, client, services):
        response = client.post("/api/signup", content="{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        services.users.register.assert_not_awaited()

    def test_login_invalid_credentials(self, client, services):
        services.users.authenticate.side_effect = Unauthorized("Invalid credentials")

        response = client.post("/api/login", json={"email": "ada@example.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    def test_me(self, client, services, current_user):
        response = client.get("/api/me", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["data"]["email"] == current_user.email
        services.users.verify_token.assert_awaited_once_with(TOKEN)

    def test_me_without_token(self, client, services):
        response = client.get("/api/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized to access this route"
        services.users.verify_token.assert_not_awaited()

    def test_me_with_non_bearer_header(self, client):
        response = client.get("/api/me", headers={"Authorization": f"Token {TOKEN}"})
        assert response.status_code == 401

    def test_me_with_rejected_token(self, client, services):
        services.users.verify_token.side_effect = Unauthorized("Not authorized to access this route")

        response = client.get("/api/me", headers=AUTH)

        assert response.status_code == 401


class TestBookRoutes:
    """Test cases for the book catalog routes."""

    def test_list_books(self, client, services, empty_page):
        services.books.list.return_value = empty_page

        response = client.get("/api/books?genre=Fantasy&sort=-published_year&fields=title&page=2&limit=5")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["count"] == 0
        assert data["data"] == []
        assert data["pagination"]["pages"] == 0
        services.books.list.assert_awaited_once_with(
            {"genre": "Fantasy"},
            sort="-published_year",
            fields="title",
            page=2,
            limit=5,
        )

    def test_list_books_defaults(self, client, services, empty_page):
        services.books.list.return_value = empty_page

        client.get("/api/books?page=abc&limit=-1")

        kwargs = services.books.list.await_args.kwargs
        assert (kwargs["page"], kwargs["limit"]) == (1, 10)

    def test_list_books_rejects_operator_filters(self, client, services):
        response = client.get("/api/books?$where=1")

        assert response.status_code == 400
        services.books.list.assert_not_awaited()

    def test_list_books_huge_page_falls_back(self, client, services, empty_page):
        services.books.list.return_value = empty_page

        response = client.get("/api/books?page=99999999999999999999")

        assert response.status_code == 200
        assert services.books.list.await_args.kwargs["page"] == 1

    def test_create_requires_token(self, client, services, book_payload):
        response = client.post("/api/books", json=book_payload)

        assert response.status_code == 401
        services.books.create.assert_not_awaited()

    def test_create_book(self, client, services, current_user, book_payload):
        services.books.create.return_value = {"id": "b1", **book_payload}

        response = client.post("/api/books", json=book_payload, headers=AUTH)

        assert response.status_code == 201
        assert response.json() == {"success": True, "data": {"id": "b1", **book_payload}}
        services.books.create.assert_awaited_once_with(book_payload, current_user.id)

    def test_search(self, client, services, empty_page):
        services.books.search.return_value = empty_page

        response = client.get("/api/books/search?query=tolk")

        assert response.status_code == 200
        services.books.search.assert_awaited_once_with("tolk", 1, 10)
        services.books.get_by_id.assert_not_awaited()

    def test_search_without_query(self, client, services):
        services.books.search.side_effect = ValidationFailed("Please provide a search query")

        response = client.get("/api/books/search")

        assert response.status_code == 400
        assert response.json()["message"] == "Please provide a search query"

    def test_book_detail(self, client, services, empty_page):
        book_id = str(ObjectId())
        services.books.get_by_id.return_value = {"id": book_id, "title": "The Hobbit"}
        services.reviews.list_for_book.return_value = empty_page
        services.reviews.average_rating.return_value = 0

        response = client.get(f"/api/books/{book_id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["average_rating"] == 0
        assert data["reviews"] == []
        assert data["review_pagination"]["total"] == 0
        services.reviews.list_for_book.assert_awaited_once_with(book_id, 1, 5)

    def test_book_not_found(self, client, services):
        services.books.get_by_id.side_effect = NotFound("Book not found with id of abc")

        response = client.get("/api/books/abc")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Book not found with id of abc"}

    def test_update_by_other_user(self, client, services, book_payload):
        services.books.update.side_effect = Forbidden("Not authorized to update this book")

        response = client.put(f"/api/books/{ObjectId()}", json=book_payload, headers=AUTH)

        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to update this book"

    def test_delete_book(self, client, services, current_user):
        book_id = str(ObjectId())
        services.books.delete.return_value = 3

        response = client.delete(f"/api/books/{book_id}", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {}}
        services.books.delete.assert_awaited_once_with(book_id, current_user.id)

    def test_unexpected_error(self, client, services):
        services.books.list.side_effect = RuntimeError("connection reset")

        response = client.get("/api/books")

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Server Error"

    def test_error_detail_hidden_in_production(self, client, services, monkeypatch):
        monkeypatch.setattr(app_settings, "debug", False)
        monkeypatch.setattr(app_settings, "test_mode", False)
        services.books.list.side_effect = RuntimeError("connection reset")

        data = client.get("/api/books").json()

        assert "error" not in data

    def test_error_detail_shown_in_debug(self, client, services, monkeypatch):
        monkeypatch.setattr(app_settings, "debug", True)
        services.books.list.side_effect = RuntimeError("connection reset")

        data = client.get("/api/books").json()

        assert data["error"] == "connection reset"


class TestReviewRoutes:
    """Test cases for review routes."""

    def test_add_review(self, client, services, current_user, review_payload):
        book_id = str(ObjectId())
        services.reviews.add.return_value = {"id": "r1", **review_payload}

        response = client.post(f"/api/books/{book_id}/reviews", json=review_payload, headers=AUTH)

        assert response.status_code == 201
        services.reviews.add.assert_awaited_once_with(book_id, current_user.id, review_payload)

    def test_add_review_requires_token(self, client, services, review_payload):
        response = client.post(f"/api/books/{ObjectId()}/reviews", json=review_payload)

        assert response.status_code == 401
        services.reviews.add.assert_not_awaited()

    def test_second_review(self, client, services, review_payload):
        services.reviews.add.side_effect = Conflict("You have already reviewed this book")

        response = client.post(f"/api/books/{ObjectId()}/reviews", json=review_payload, headers=AUTH)

        assert response.status_code == 400
        assert response.json()["message"] == "You have already reviewed this book"

    def test_book_reviews(self, client, services, empty_page):
        book_id = str(ObjectId())
        services.reviews.list_for_book.return_value = empty_page

        response = client.get(f"/api/books/{book_id}/reviews?limit=3")

        assert response.status_code == 200
        services.reviews.list_for_book.assert_awaited_once_with(book_id, 1, 3)

    def test_all_reviews(self, client, services):
        services.reviews.list_all.return_value = [{"id": "r1"}, {"id": "r2"}]

        response = client.get("/api/reviews", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 2, "data": [{"id": "r1"}, {"id": "r2"}]}

    def test_all_reviews_requires_token(self, client):
        assert client.get("/api/reviews").status_code == 401

    def test_delete_review_by_other_user(self, client, services):
        services.reviews.delete.side_effect = Forbidden("Not authorized to delete this review")

        response = client.delete(f"/api/reviews/{ObjectId()}", headers=AUTH)

        assert response.status_code == 403

    def test_update_review(self, client, services, current_user, review_payload):
        review_id = str(ObjectId())
        services.reviews.update.return_value = {"id": review_id, **review_payload}

        response = client.put(f"/api/reviews/{review_id}", json=review_payload, headers=AUTH)

        assert response.status_code == 200
        services.reviews.update.assert_awaited_once_with(review_id, review_payload, current_user.id)
