"""
Security utilities for authentication.

Provides:
- Password hashing (bcrypt)
- Access / refresh JWT generation and validation
- Purpose-scoped tokens (email verification)

SECURITY REQUIREMENTS:
- ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set via environment variables
- Both must be cryptographically secure (32+ characters) and differ from each other
- Secrets must NEVER be committed to source control
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
from uuid import uuid4
from jose import JWTError, jwt
import bcrypt
from core.config import settings

ACCESS_TOKEN_SECRET = settings.ACCESS_TOKEN_SECRET
REFRESH_TOKEN_SECRET = settings.REFRESH_TOKEN_SECRET
EMAIL_VERIFICATION_SECRET = settings.EMAIL_VERIFICATION_SECRET or ACCESS_TOKEN_SECRET

for _name, _secret in (("ACCESS_TOKEN_SECRET", ACCESS_TOKEN_SECRET), ("REFRESH_TOKEN_SECRET", REFRESH_TOKEN_SECRET)):
    if len(_secret) < 32:
        raise ValueError(
            f"{_name} must be at least 32 characters. "
            "Generate with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
        )
if ACCESS_TOKEN_SECRET == REFRESH_TOKEN_SECRET:
    raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_EXPIRE_MINUTES = settings.REFRESH_TOKEN_EXPIRE_MINUTES
EMAIL_VERIFICATION_EXPIRE_MINUTES = 60

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    raw = plain_password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(raw, hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """Hash a password."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def _encode(data: Dict, secret: str, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "type": token_type,
        # Unique per issue so a rotated token never equals its predecessor
        "jti": uuid4().hex,
        "exp": datetime.now(timezone.utc) + expires_delta,
    })
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def _decode(token: str, secret: str, token_type: str) -> Optional[Dict]:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != token_type or not payload.get("sub"):
        return None
    return payload


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a short-lived access token. `data` must carry `sub`."""
    return _encode(
        data,
        ACCESS_TOKEN_SECRET,
        "access",
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a long-lived refresh token. `data` must carry `sub`."""
    return _encode(
        data,
        REFRESH_TOKEN_SECRET,
        "refresh",
        expires_delta or timedelta(minutes=REFRESH_TOKEN_EXPIRE_MINUTES),
    )


def decode_access_token(token: str) -> Optional[Dict]:
    """Decode and validate an access token. None if unusable for any reason."""
    return _decode(token, ACCESS_TOKEN_SECRET, "access")


def decode_refresh_token(token: str) -> Optional[Dict]:
    """Decode and validate a refresh token. None if unusable for any reason."""
    return _decode(token, REFRESH_TOKEN_SECRET, "refresh")


def create_email_verification_token(user_id: str, email: str) -> str:
    return _encode(
        {"sub": user_id, "email": email},
        EMAIL_VERIFICATION_SECRET,
        "email_verification",
        timedelta(minutes=EMAIL_VERIFICATION_EXPIRE_MINUTES),
    )


def decode_email_verification_token(token: str) -> Optional[Dict]:
    return _decode(token, EMAIL_VERIFICATION_SECRET, "email_verification")
