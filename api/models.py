"""
API response models and envelope helpers.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from store.query import Page, Pagination


class ErrorResponse(BaseModel):
    """Error envelope."""
    success: bool = Field(False, description="Always false for errors")
    message: str = Field(..., description="Error message")
    error: Optional[str] = Field(None, description="Exception details, only in debug mode")


class UserSummary(BaseModel):
    """Public part of a user record."""
    id: str
    name: str
    email: str


class AuthResponse(BaseModel):
    """Signup/login response."""
    success: bool = True
    token: str = Field(..., description="Bearer token for protected routes")
    user: UserSummary


class ListResponse(BaseModel):
    """Paged listing envelope."""
    success: bool = True
    pagination: Pagination
    count: int = Field(..., description="Number of records on this page")
    data: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")


def page_envelope(page: Page) -> Dict[str, Any]:
    return ListResponse(
        pagination=page.pagination,
        count=page.count,
        data=page.items,
    ).model_dump()


def data_envelope(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}
