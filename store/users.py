"""
Identity store: user signup, login and session token resolution.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field
from pymongo.errors import DuplicateKeyError

from .database import USERS
from .errors import Conflict, Unauthorized
from .models import CurrentUser, LoginInput, SignupInput, parse
from .security import create_access_token, decode_access_token, hash_password, verify_password

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
NOT_AUTHORIZED = "Not authorized to access this route"

# password_hash never leaves the store
PUBLIC_FIELDS = {"name": 1, "email": 1, "created_at": 1}


class Session(BaseModel):
    """Authenticated identity plus the signed token issued for it."""
    user: CurrentUser = Field(..., description="Authenticated user")
    token: str = Field(..., description="Signed session token")


def _identity(doc: Dict[str, Any]) -> CurrentUser:
    return CurrentUser(
        id=str(doc["_id"]),
        name=doc["name"],
        email=doc["email"],
        created_at=doc.get("created_at"),
    )


class IdentityStore:
    """Persists users and issues/validates session tokens."""

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        secret_key: str,
        algorithm: str = "HS256",
        token_expire_minutes: int = 60 * 24 * 30,
        hash_iterations: int = 260000,
    ):
        self.collection = database[USERS]
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_expire_minutes = token_expire_minutes
        self.hash_iterations = hash_iterations

    def _issue_token(self, user_id: str) -> str:
        return create_access_token(
            user_id,
            self.secret_key,
            algorithm=self.algorithm,
            expires_minutes=self.token_expire_minutes,
        )

    async def register(self, name: Any, email: Any, password: Any) -> Session:
        """
        Create a user and sign them in.

        Raises:
            ValidationFailed: If the signup data breaks a rule
            Conflict: If the email is already registered
        """
        signup = parse(SignupInput, {"name": name, "email": email, "password": password})

        if await self.collection.find_one({"email": signup.email}, {"_id": 1}):
            raise Conflict("Email already in use")

        doc = {
            "name": signup.name,
            "email": signup.email,
            "password_hash": hash_password(signup.password, self.hash_iterations),
            "created_at": datetime.now(timezone.utc),
        }
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            # Lost a race with a concurrent signup for the same email
            raise Conflict("Email already in use")

        doc["_id"] = result.inserted_id
        logger.info("User registered", user_id=str(result.inserted_id))
        return Session(user=_identity(doc), token=self._issue_token(str(result.inserted_id)))

    async def authenticate(self, email: Any, password: Any) -> Session:
        """
        Check credentials and issue a token.

        Unknown emails and wrong passwords fail with the same message.
        """
        login = parse(LoginInput, {"email": email, "password": password})

        doc = await self.collection.find_one({"email": login.email})
        if doc is None or not verify_password(login.password, doc.get("password_hash", "")):
            logger.info("Failed login attempt")
            raise Unauthorized(INVALID_CREDENTIALS)

        logger.info("User logged in", user_id=str(doc["_id"]))
        return Session(user=_identity(doc), token=self._issue_token(str(doc["_id"])))

    async def get_by_id(self, user_id: str) -> Optional[CurrentUser]:
        """Look up a user without exposing the password hash."""
        try:
            object_id = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None
        doc = await self.collection.find_one({"_id": object_id}, PUBLIC_FIELDS)
        return _identity(doc) if doc else None

    async def verify_token(self, token: str) -> CurrentUser:
        """
        Resolve a session token to the user it was issued for.

        Raises:
            Unauthorized: If the token is invalid or expired, or the user is gone
        """
        user_id = decode_access_token(token, self.secret_key, self.algorithm)
        user = await self.get_by_id(user_id)
        if user is None:
            logger.warning("Token references a missing user", user_id=user_id)
            raise Unauthorized(NOT_AUTHORIZED)
        return user
