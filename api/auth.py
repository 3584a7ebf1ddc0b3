"""
Bearer token authentication for the FastAPI API.
"""

from typing import Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies import Services, get_services
from store.errors import Unauthorized
from store.models import CurrentUser

# Missing or non-Bearer headers are reported by get_current_user, not FastAPI
security = HTTPBearer(auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this route"


def extract_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header.

    Raises:
        Unauthorized: If the header is absent or malformed
    """
    if credentials is None or not credentials.credentials.strip():
        raise Unauthorized(NOT_AUTHORIZED)
    return credentials.credentials.strip()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: Services = Depends(get_services),
) -> CurrentUser:
    """
    Resolve the request's bearer token to the authenticated user.

    Raises:
        Unauthorized: If the token is missing, invalid, expired or orphaned
    """
    token = extract_token(credentials)
    user = await services.users.verify_token(token)
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user
