"""
Password hashing and session token signing.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog

from .errors import Unauthorized

logger = structlog.get_logger(__name__)

HASH_SCHEME = "pbkdf2_sha256"
SALT_BYTES = 16


def hash_password(password: str, iterations: int = 260000) -> str:
    """
    Hash a password with a random salt.

    Returns:
        Encoded hash ``pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>``
    """
    salt = secrets.token_bytes(SALT_BYTES)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_SCHEME}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a raw password against an encoded hash."""
    try:
        scheme, iterations, salt_hex, digest_hex = encoded.split("$")
        if scheme != HASH_SCHEME:
            return False
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations)
        )
    except (AttributeError, ValueError):
        logger.warning("Stored password hash is malformed")
        return False
    return secrets.compare_digest(digest.hex(), digest_hex)


def create_access_token(
    user_id: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
    now: Optional[datetime] = None,
) -> str:
    """Sign a token embedding the user id and an expiry."""
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> str:
    """
    Verify a token signature and expiry.

    Returns:
        The user id embedded in the token

    Raises:
        Unauthorized: If the token is invalid, expired or carries no user id
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("Expired session token presented")
        raise Unauthorized("Not authorized to access this route")
    except jwt.PyJWTError as e:
        logger.warning("Invalid session token presented", error=str(e))
        raise Unauthorized("Not authorized to access this route")

    user_id = payload.get("id")
    if not isinstance(user_id, str) or not user_id:
        raise Unauthorized("Not authorized to access this route")
    return user_id
