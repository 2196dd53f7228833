"""Security utilities for password hashing and verification codes"""

import hashlib
import logging
import secrets

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

# Default bcrypt cost factor
DEFAULT_BCRYPT_ROUNDS = 10

# Password encryption context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=DEFAULT_BCRYPT_ROUNDS,
)


def _normalize_password(password: str) -> bytes:
    """Normalize password to handle bcrypt's 72-byte limitation

    Uses SHA256 to hash the password first, ensuring it fits within
    bcrypt's 72-byte limit whatever the encoded length of the password.

    Args:
        password: Plain text password

    Returns:
        Normalized password bytes suitable for bcrypt
    """
    # Always 64 hex chars
    return hashlib.sha256(password.encode("utf-8")).hexdigest().encode("utf-8")


def _context_for(rounds: int | None) -> CryptContext:
    if rounds is None or rounds == DEFAULT_BCRYPT_ROUNDS:
        return pwd_context
    return pwd_context.copy(bcrypt__rounds=rounds)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hashed password

    The comparison is done by bcrypt and runs in constant time.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password from database

    Returns:
        True if password matches, False otherwise (including when the
        stored value is not a recognizable bcrypt hash)
    """
    if not hashed_password:
        return False
    normalized = _normalize_password(plain_password)
    try:
        return pwd_context.verify(normalized, hashed_password)
    except ValueError:
        logger.warning("Stored password is not a valid bcrypt hash")
        return False


def get_password_hash(password: str, rounds: int | None = None) -> str:
    """Hash password using bcrypt with SHA256 normalization

    Args:
        password: Plain text password
        rounds: bcrypt cost factor (defaults to 10)

    Returns:
        Hashed password string
    """
    normalized = _normalize_password(password)
    return _context_for(rounds).hash(normalized)


def is_password_hash(value: str | None) -> bool:
    """Check whether a value is a hash produced by this module's context"""
    if not value:
        return False
    return pwd_context.identify(value) is not None


def generate_verification_code() -> int:
    """Generate a 5-digit verification code

    The leading digit is 1-9 and the remaining four digits 0000-9999,
    so every value in [10000, 99999] is equally likely.

    Returns:
        Verification code
    """
    first_digit = secrets.randbelow(9) + 1
    remaining_digits = secrets.randbelow(10000)
    return first_digit * 10000 + remaining_digits


def generate_token() -> str:
    """Generate a random URL-safe token"""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """Get the sha256 hex digest of a token, as stored in the database"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
