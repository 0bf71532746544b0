"""
Password and account-name policy validation.

Password requirements:
- 8 to 72 characters (bcrypt limit)
- At least 1 uppercase letter, 1 lowercase letter, 1 digit
- At least 1 special character from SPECIAL_CHARACTERS
- Only letters, digits and SPECIAL_CHARACTERS
"""
import re
from typing import Tuple, List

SPECIAL_CHARACTERS = "@#!$^&*"

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 72
MIN_NAME_LENGTH = 5

_ALLOWED_PASSWORD = re.compile(r"^[A-Za-z\d" + re.escape(SPECIAL_CHARACTERS) + r"]+$")
_USERNAME = re.compile(r"^[A-Za-z]+$")
_FULL_NAME = re.compile(r"^[A-Za-z\s]+$")

PASSWORD_REQUIREMENTS_MESSAGE = (
    "Password must be at least 8 characters long and contain at least one lowercase letter, "
    "one uppercase letter, one number, and one special character (@, #, !, $, ^, &, *)."
)


def validate_password(password: str) -> Tuple[bool, List[str]]:
    """
    Validate password against security policy.

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    errors = []

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append("Password must be at least 8 characters")

    if len(password) > MAX_PASSWORD_LENGTH:
        errors.append("Password must not exceed 72 characters (bcrypt limit)")

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        errors.append("Password must contain at least one digit")

    if not any(ch in SPECIAL_CHARACTERS for ch in password):
        errors.append(f"Password must contain at least one special character ({SPECIAL_CHARACTERS})")

    if password and not _ALLOWED_PASSWORD.match(password):
        errors.append(f"Password may only contain letters, digits and {SPECIAL_CHARACTERS}")

    return len(errors) == 0, errors


def validate_account_names(username: str, full_name: str) -> List[str]:
    """Check username (letters only) and full name (letters and spaces), both 5+ chars."""
    errors = []
    if len(username) < MIN_NAME_LENGTH or len(full_name) < MIN_NAME_LENGTH:
        errors.append("Username and full name must be at least 5 characters long.")
    if username and not _USERNAME.match(username):
        errors.append("Username must only contain letters.")
    if full_name and not _FULL_NAME.match(full_name):
        errors.append("Full name must only contain letters (no numbers or special characters).")
    return errors
