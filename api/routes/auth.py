"""
Signup, login and current-identity routes.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status

from api.auth import get_current_user
from api.dependencies import Services, get_services
from api.models import AuthResponse, UserSummary, data_envelope
from store.models import CurrentUser
from store.users import Session

router = APIRouter(prefix="/api", tags=["Auth"])


def _auth_response(session: Session) -> Dict[str, Any]:
    return AuthResponse(
        token=session.token,
        user=UserSummary(id=session.user.id, name=session.user.name, email=session.user.email),
    ).model_dump()


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    payload: Dict[str, Any] = Body(..., examples=[{"name": "Ada", "email": "ada@example.com", "password": "secret1"}]),
    services: Services = Depends(get_services),
):
    """Register a new user and return a session token."""
    session = await services.users.register(payload.get("name"), payload.get("email"), payload.get("password"))
    return _auth_response(session)


@router.post("/login")
async def login(
    payload: Dict[str, Any] = Body(..., examples=[{"email": "ada@example.com", "password": "secret1"}]),
    services: Services = Depends(get_services),
):
    """Check credentials and return a session token."""
    session = await services.users.authenticate(payload.get("email"), payload.get("password"))
    return _auth_response(session)


@router.get("/me")
async def me(user: CurrentUser = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return data_envelope(user.model_dump())
