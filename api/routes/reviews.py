"""
Review routes not nested under a book.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from api.auth import get_current_user
from api.dependencies import Services, get_services
from api.models import data_envelope
from store.models import CurrentUser

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.get("")
async def list_reviews(
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Every review with author name and book title, newest first. Not paginated."""
    reviews = await services.reviews.list_all()
    return {"success": True, "count": len(reviews), "data": reviews}


@router.put("/{review_id}")
async def update_review(
    review_id: str,
    payload: Dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Update a review; only its author may do so."""
    review = await services.reviews.update(review_id, payload, user.id)
    return data_envelope(review)


@router.delete("/{review_id}")
async def delete_review(
    review_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Delete a review; only its author may do so."""
    await services.reviews.delete(review_id, user.id)
    return data_envelope({})
