"""
Account endpoints.

Provides:
- Signup, email verification
- Login / logout (tokens in HTTP-only cookies)
- Refresh-token rotation
- Password change, account details, account deletion
"""
from fastapi import APIRouter, Cookie, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import Optional
import logging

from core.auth import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, Identity, get_current_identity
from core.config import settings
from core.database import get_db
from schemas import (
    ChangePasswordRequest,
    LoginRequest,
    SignupRequest,
    UserDetailsUpdate,
    UserResponse,
    to_payload,
)
from services import accounts
from services.accounts import TokenPair

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user", tags=["user"])


def _set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def _clear_auth_cookies(response: Response) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            name,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite=settings.COOKIE_SAMESITE,
        )


@router.post("/signup")
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    """
    Register a new account.

    When email is enabled a verification link is sent; failing to send it
    does not fail the signup.
    """
    user = accounts.register(db, data.username, data.full_name, data.email, data.password)

    message = "User created successfully"
    if settings.EMAIL_ENABLED:
        if accounts.send_verification_email(user):
            message = f"Signup successful! Please check your email ({user.email}) to verify your account."
        else:
            logger.warning(f"Verification email not sent for account {user.id}")

    return {
        "success": True,
        "message": message,
        "createdUser": to_payload(UserResponse, user),
    }


@router.get("/verify-email")
def verify_email(token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    user = accounts.verify_email(db, token)
    return {
        "success": True,
        "message": "Email verified successfully",
        "user": to_payload(UserResponse, user),
    }


@router.post("/login")
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """Verify credentials and set both token cookies. Tokens never appear in the body."""
    user, tokens = accounts.login(db, data.username, data.password)
    _set_auth_cookies(response, tokens)
    return {
        "success": True,
        "message": "User logged in successfully",
        "user": to_payload(UserResponse, user),
    }


@router.post("/logout")
def logout(
    response: Response,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    accounts.logout(db, identity)
    _clear_auth_cookies(response)
    return {"success": True, "message": "User logged out successfully"}


@router.post("/refresh-token")
def refresh_token(
    response: Response,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    db: Session = Depends(get_db),
):
    """Rotate the pair. Only the most recently issued refresh token is accepted."""
    _, tokens = accounts.refresh(db, refresh_cookie)
    _set_auth_cookies(response, tokens)
    return {
        "success": True,
        "message": "Access token refreshed",
        "accessToken": tokens.access_token,
        "refreshToken": tokens.refresh_token,
    }


@router.put("/user-password")
def change_password(
    data: ChangePasswordRequest,
    response: Response,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    accounts.change_password(db, identity, data.old_password, data.new_password)
    # The session ended with the password change
    _clear_auth_cookies(response)
    return {"success": True, "message": "Password changed successfully. Please log in again."}


@router.get("/user-details")
def get_user_details(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    user = accounts.get_user(db, identity)
    return {
        "success": True,
        "message": "User details fetched successfully",
        "user": to_payload(UserResponse, user),
    }


@router.put("/user-details")
def update_user_details(
    data: UserDetailsUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    user = accounts.update_details(db, identity, data.username, data.full_name, data.email)
    return {
        "success": True,
        "message": "User details updated successfully",
        "user": to_payload(UserResponse, user),
    }


@router.get("/auth-check")
def auth_check(identity: Identity = Depends(get_current_identity)):
    return {
        "success": True,
        "message": f"Welcome, {identity.username}",
        "data": {
            "id": str(identity.id),
            "username": identity.username,
            "email": identity.email,
            "fullName": identity.full_name,
        },
    }


@router.delete("/user-delete")
def delete_user(
    response: Response,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Delete the caller's account. Expenses, todos and plans they own are left in place."""
    accounts.delete_account(db, identity)
    _clear_auth_cookies(response)
    return {"success": True, "message": "User deleted successfully"}
