import re
from typing import Optional, Tuple
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from email_validator import validate_email, EmailNotValidError

from errors import ValidationError

hasher = PasswordHasher()

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,64}$")
MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def normalize_email(email: str) -> Optional[str]:
    try:
        v = validate_email(email, allow_smtputf8=True, check_deliverability=False)
        return v.normalized.lower()
    except EmailNotValidError:
        return None


def validate_registration(username: str, email: str, password: str, channel_name: str) -> Tuple[str, str, str]:
    """Returns normalized (username, email, channel_name) or raises ValidationError."""
    username = (username or "").strip()
    channel_name = (channel_name or "").strip()
    if not username or not email or not password or not channel_name:
        raise ValidationError("Please provide all required fields")
    if not USERNAME_RE.match(username):
        raise ValidationError("Username must be 3-64 letters, digits, '_', '.' or '-'")
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("Invalid email")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return username, normalized, channel_name
