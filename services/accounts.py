"""
Account & session service.

Single active session per account: every login/refresh stores the newly
issued refresh token on the user row, and /refresh-token only accepts the
stored value. Logging out or changing the password clears it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.auth import Identity
from core.config import settings
from core.exceptions import AuthError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.password_policy import PASSWORD_REQUIREMENTS_MESSAGE, validate_account_names, validate_password
from core.security import (
    create_access_token,
    create_email_verification_token,
    create_refresh_token,
    decode_email_verification_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from models import User
from services.email_service import EmailService, email_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def normalize_name(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _ensure_unique(db: Session, username: str, email: str, exclude_id: Optional[UUID] = None) -> None:
    query = db.query(User).filter(or_(User.username == username, func.lower(User.email) == email))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    existing = query.first()
    if existing:
        if existing.username == username:
            raise ConflictError("Username is already taken")
        raise ConflictError("Email is already registered")


def _commit_unique(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent signup/update with the same handle or email
        db.rollback()
        raise ConflictError("Username or email is already registered")


def _load_user(db: Session, identity: Identity) -> User:
    user = db.get(User, identity.id)
    if not user:
        raise NotFoundError("User not found")
    return user


def register(db: Session, username: str, full_name: str, email: str, password: str) -> User:
    """
    Create an account. The raw password is only ever hashed.

    Raises ValidationError on malformed input, ConflictError on a taken
    username or email.
    """
    username = normalize_name(username)
    full_name = normalize_name(full_name)
    email = normalize_email(email)

    if not all([username, full_name, email, password and password.strip()]):
        raise ValidationError("All fields are required")

    name_errors = validate_account_names(username, full_name)
    if name_errors:
        raise ValidationError(name_errors[0])

    valid, _ = validate_password(password)
    if not valid:
        raise ValidationError(PASSWORD_REQUIREMENTS_MESSAGE, field="password")

    _ensure_unique(db, username, email)

    user = User(
        username=username,
        full_name=full_name,
        email=email,
        password_hash=get_password_hash(password),
    )
    db.add(user)
    _commit_unique(db)
    db.refresh(user)

    logger.info(f"Account created: {user.id}")
    return user


def send_verification_email(user: User, notifier: EmailService = email_service) -> bool:
    token = create_email_verification_token(str(user.id), user.email)
    link = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/v1/user/verify-email?token={token}"
    return notifier.send_verification(user.email, link)


def verify_email(db: Session, token: Optional[str]) -> User:
    payload = decode_email_verification_token(token) if token else None
    if not payload:
        raise ValidationError("Invalid or expired verification token")

    try:
        user = db.get(User, UUID(payload["sub"]))
    except ValueError:
        user = None
    if not user:
        raise ValidationError("User not found")

    user.is_email_verified = True
    db.commit()
    db.refresh(user)
    return user


def issue_tokens(db: Session, user: User) -> TokenPair:
    """Sign a fresh pair and make the new refresh token the only valid one."""
    access_token = create_access_token(
        {"sub": str(user.id), "username": user.username, "email": user.email}
    )
    refresh_token = create_refresh_token({"sub": str(user.id)})

    user.refresh_token = refresh_token
    db.commit()
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


def login(db: Session, username: Optional[str], password: Optional[str]) -> Tuple[User, TokenPair]:
    """
    Raises NotFoundError for an unknown username and AuthError for a wrong
    password; nothing is issued or persisted on failure.
    """
    username = normalize_name(username)
    if not username or not password:
        raise ValidationError("All fields are required")

    user = db.query(User).filter(User.username == username).first()
    if not user:
        raise NotFoundError("Can't find user")

    if not verify_password(password, user.password_hash):
        logger.warning(f"Failed login for account {user.id}")
        raise AuthError("Invalid user credentials")

    if settings.EMAIL_VERIFICATION_REQUIRED and not user.is_email_verified:
        raise ForbiddenError("Please verify your email before logging in")

    tokens = issue_tokens(db, user)
    db.refresh(user)
    return user, tokens


def refresh(db: Session, presented_token: Optional[str]) -> Tuple[User, TokenPair]:
    """Rotate both tokens if `presented_token` is the account's current refresh token."""
    if not presented_token:
        raise AuthError("Unauthorized access")

    payload = decode_refresh_token(presented_token)
    if not payload:
        raise AuthError("Invalid refresh token")

    try:
        user = db.get(User, UUID(payload["sub"]))
    except ValueError:
        user = None
    if not user:
        raise AuthError("Invalid refresh token")

    if user.refresh_token is None or presented_token != user.refresh_token:
        logger.warning(f"Stale refresh token presented for account {user.id}")
        raise AuthError("Refresh token expired or used")

    return user, issue_tokens(db, user)


def logout(db: Session, identity: Identity) -> None:
    user = _load_user(db, identity)
    user.refresh_token = None
    db.commit()


def change_password(
    db: Session,
    identity: Identity,
    old_password: Optional[str],
    new_password: Optional[str],
    notifier: EmailService = email_service,
) -> None:
    """
    Re-hash, end the current session, then notify by email.

    The notification is best-effort and cannot fail the change.
    """
    if not old_password or not new_password:
        raise ValidationError("All fields are required")

    user = _load_user(db, identity)
    if not verify_password(old_password, user.password_hash):
        raise AuthError("Old password incorrect")

    valid, _ = validate_password(new_password)
    if not valid:
        raise ValidationError(PASSWORD_REQUIREMENTS_MESSAGE, field="newPassword")

    user.password_hash = get_password_hash(new_password)
    user.refresh_token = None
    db.commit()
    logger.info(f"Password changed for account {user.id}")

    try:
        notifier.send_password_changed(user.email, user.full_name)
    except Exception as e:
        logger.warning(f"Password change notification failed for account {user.id}: {e}")


def get_user(db: Session, identity: Identity) -> User:
    return _load_user(db, identity)


def update_details(
    db: Session,
    identity: Identity,
    username: Optional[str],
    full_name: Optional[str],
    email: Optional[str],
) -> User:
    username = normalize_name(username)
    full_name = normalize_name(full_name)
    email = normalize_email(email)
    if not username or not full_name or not email:
        raise ValidationError("All fields are required")

    name_errors = validate_account_names(username, full_name)
    if name_errors:
        raise ValidationError(name_errors[0])

    user = _load_user(db, identity)
    _ensure_unique(db, username, email, exclude_id=user.id)

    user.username = username
    user.full_name = full_name
    user.email = email
    _commit_unique(db)
    db.refresh(user)
    return user


def delete_account(db: Session, identity: Identity) -> None:
    user = _load_user(db, identity)
    db.delete(user)
    db.commit()
    logger.info(f"Account deleted: {identity.id}")
