"""
Book catalog routes, including the reviews nested under a book.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, status

from api.auth import get_current_user
from api.config import config as api_config
from api.dependencies import Services, get_services
from api.models import data_envelope, page_envelope
from store.models import CurrentUser
from store.query import build_filters, parse_page_params

router = APIRouter(prefix="/api/books", tags=["Books"])

BOOKS_PAGE_SIZE = api_config.default_page_size
REVIEWS_PAGE_SIZE = api_config.default_page_size
DETAIL_REVIEWS_PAGE_SIZE = api_config.detail_reviews_page_size


def _page_params(page: Optional[str], limit: Optional[str], default_limit: int):
    return parse_page_params(page, limit, default_limit, api_config.max_page_size)


@router.get("")
async def list_books(request: Request, services: Services = Depends(get_services)):
    """
    List books with filtering, sorting, field selection and pagination.

    - any non-reserved query key filters by equality, e.g. **genre=Fantasy**
    - **sort**: comma-separated fields, prefix with `-` for descending
    - **fields**: comma-separated fields to return
    - **page** / **limit**: pagination (limit defaults to 10)
    """
    params = dict(request.query_params)
    page, limit = _page_params(params.get("page"), params.get("limit"), BOOKS_PAGE_SIZE)
    result = await services.books.list(
        build_filters(params),
        sort=params.get("sort"),
        fields=params.get("fields"),
        page=page,
        limit=limit,
    )
    return page_envelope(result)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: Dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Create a book owned by the caller."""
    book = await services.books.create(payload, user.id)
    return data_envelope(book)


# Declared before /{book_id} so "search" is not taken for an id
@router.get("/search")
async def search_books(
    query: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """Case-insensitive partial match on title or author."""
    page_number, page_size = _page_params(page, limit, BOOKS_PAGE_SIZE)
    result = await services.books.search(query, page_number, page_size)
    return page_envelope(result)


@router.get("/{book_id}")
async def get_book(
    book_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """Book detail with its average rating and a page of reviews (5 per page by default)."""
    book = await services.books.get_by_id(book_id)
    page_number, page_size = _page_params(page, limit, DETAIL_REVIEWS_PAGE_SIZE)
    reviews = await services.reviews.list_for_book(book_id, page_number, page_size)
    book["average_rating"] = await services.reviews.average_rating(book_id)
    book["reviews"] = reviews.items
    book["review_pagination"] = reviews.pagination.model_dump()
    return data_envelope(book)


@router.put("/{book_id}")
async def update_book(
    book_id: str,
    payload: Dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Update a book; only its creator may do so."""
    book = await services.books.update(book_id, payload, user.id)
    return data_envelope(book)


@router.delete("/{book_id}")
async def delete_book(
    book_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Delete a book and all of its reviews; only its creator may do so."""
    await services.books.delete(book_id, user.id)
    return data_envelope({})


@router.get("/{book_id}/reviews")
async def list_book_reviews(
    book_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """Reviews of one book, newest first."""
    page_number, page_size = _page_params(page, limit, REVIEWS_PAGE_SIZE)
    result = await services.reviews.list_for_book(book_id, page_number, page_size)
    return page_envelope(result)


@router.post("/{book_id}/reviews", status_code=status.HTTP_201_CREATED)
async def add_review(
    book_id: str,
    payload: Dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Review a book; each user may review a book once."""
    review = await services.reviews.add(book_id, user.id, payload)
    return data_envelope(review)
