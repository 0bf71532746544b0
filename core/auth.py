"""
Authentication dependencies.

The access token travels in the HTTP-only `accessToken` cookie. The gate
fails closed: a missing, malformed or expired token, or a subject that no
longer exists, is a 401 before any handler logic runs.

Handlers receive an explicit `Identity` and pass it down to services.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import APIKeyCookie
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import AuthError
from core.security import decode_access_token
from models import User

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

# auto_error=False so a missing cookie becomes our 401 envelope, not a 403
access_cookie = APIKeyCookie(name=ACCESS_TOKEN_COOKIE, auto_error=False)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller."""
    id: UUID
    username: str
    email: str
    full_name: str
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            is_admin=bool(user.is_admin),
        )


def get_current_identity(
    token: Optional[str] = Depends(access_cookie),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Resolve the caller from the access-token cookie.

    Raises AuthError if the token is missing or invalid or the user is gone.
    """
    if not token:
        raise AuthError("Unauthorized: No token provided")

    payload = decode_access_token(token)
    if not payload:
        logger.warning("Rejected access token (invalid, expired or wrong type)")
        raise AuthError("Unauthorized: Invalid or expired token")

    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise AuthError("Unauthorized: Invalid token payload")

    user = db.get(User, user_id)
    if not user:
        raise AuthError("Unauthorized: User not found")

    return Identity.from_user(user)


