"""
Password hashing and verification utilities.

bcrypt is the primary scheme; pbkdf2_sha256 hashes are still accepted so
that accounts hashed on hosts without a working bcrypt backend keep working.
"""

import logging
from passlib.context import CryptContext
from passlib.exc import MissingBackendError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt", "pbkdf2_sha256"], deprecated="auto")
fallback_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _truncate(password: str) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) <= BCRYPT_MAX_BYTES:
        return password
    return encoded[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    """
    Hash a plaintext password using bcrypt, or PBKDF2 when bcrypt is unavailable.

    Args:
        password: The plaintext password to hash

    Returns:
        The hashed password as a string

    Example:
        >>> hashed = hash_password("mysecretpassword")
        >>> verify_password("mysecretpassword", hashed)
        True
    """
    try:
        return pwd_context.hash(_truncate(password))
    except MissingBackendError as e:
        logger.warning("bcrypt backend unavailable, hashing with pbkdf2_sha256: %s", e)
        return fallback_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored hash.

    Returns:
        True if the password matches, False otherwise (including hashes in
        an unknown format)
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(_truncate(plain_password), hashed_password)
    except ValueError:
        logger.warning("Stored password hash has an unrecognized format")
        return False
