"""Authentication utilities."""
import logging
import secrets
from typing import Optional

import bcrypt
import redis
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.config import SESSION_TTL_SECONDS
from storefront.database import get_db
from storefront.errors import AuthorizationError
from storefront.models import User
from storefront.monitoring import auth_attempts_counter, auth_failures_counter

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


class SessionStore:
    """Opaque session tokens kept in Redis."""

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = SESSION_TTL_SECONDS):
        """
        Initialize session store.

        Args:
            redis_client: Redis client
            ttl_seconds: Session lifetime
        """
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds

    def create(self, user_id: int) -> str:
        """Start a session and return its token."""
        token = secrets.token_urlsafe(32)
        self.redis_client.setex(f"{SESSION_KEY_PREFIX}{token}", self.ttl_seconds, str(user_id))
        return token

    def resolve(self, token: str) -> Optional[int]:
        """Return the user ID for a live session, or None."""
        value = self.redis_client.get(f"{SESSION_KEY_PREFIX}{token}")
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return int(value)

    def destroy(self, token: str) -> None:
        self.redis_client.delete(f"{SESSION_KEY_PREFIX}{token}")


def get_session_store(request: Request) -> SessionStore:
    """Get session store backed by the app's Redis client."""
    return SessionStore(request.app.state.redis_client)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from a ``Bearer <token>`` header value."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def get_current_user_id(
    authorization: Optional[str] = Header(None),
    sessions: SessionStore = Depends(get_session_store)
) -> Optional[int]:
    """
    Resolve the session of the caller, if any.

    Anonymous callers and unknown tokens yield None; routes that need a
    user depend on ``require_user`` instead.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    return sessions.resolve(token)


def require_user(
    authorization: Optional[str] = Header(None),
    sessions: SessionStore = Depends(get_session_store)
) -> int:
    """
    Require an authenticated caller.

    Returns:
        User ID

    Raises:
        HTTPException: If the session is missing or expired
    """
    auth_attempts_counter.add(1, {"type": "session"})

    if authorization is None:
        auth_failures_counter.add(1, {"reason": "missing_header"})
        logger.warning("Authentication failed: Missing authorization header")
        raise HTTPException(status_code=401, detail="Missing authorization header")

    token = extract_bearer_token(authorization)
    if token is None:
        auth_failures_counter.add(1, {"reason": "invalid_format"})
        logger.warning("Authentication failed: Invalid authorization header format")
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    user_id = sessions.resolve(token)
    if user_id is None:
        auth_failures_counter.add(1, {"reason": "invalid_session"})
        logger.warning("Authentication failed: Unknown or expired session", extra={
            "token_prefix": token[:6] + "..."
        })
        raise HTTPException(status_code=401, detail="Session expired, please log in")

    return user_id


def is_admin(db: Session, user_id: int) -> bool:
    user = db.query(User).filter(User.id == user_id).first()
    return bool(user and user.admin)


def require_admin(
    user_id: int = Depends(require_user),
    db: Session = Depends(get_db)
) -> int:
    """
    Require an administrator. Every back office route depends on this.

    Raises:
        AuthorizationError: If the user is not an administrator
    """
    if not is_admin(db, user_id):
        logger.warning("Access denied to admin action", extra={"user_id": user_id})
        raise AuthorizationError("You do not have permission to access this page")
    return user_id
