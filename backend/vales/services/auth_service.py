# Overview: Password hashing and credential checks for store logins.

"""
Authentication service.

WHY: Every voucher is attributed to the store that created it, so store
credentials must be verified safely. Uses bcrypt for password hashing.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12,
  never below MIN_BCRYPT_ROUNDS outside of tests)
- Minimum 8 characters required
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import PasswordValidationError
from ..models import Store


MIN_PASSWORD_LENGTH = 8
MIN_BCRYPT_ROUNDS = 10
DEFAULT_BCRYPT_ROUNDS = 12


def validate_password_strength(password: str | None) -> None:
    """
    Validate password meets the minimum requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"
        )


def _bcrypt_rounds() -> int:
    rounds = current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS)
    if current_app.testing:
        return rounds
    return max(rounds, MIN_BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise. Malformed or
    missing hashes (e.g. legacy plaintext rows) yield False, never an error.

    WHY timing-safe: bcrypt.checkpw() compares in constant time.
    """
    if not password or not password_hash:
        return False

    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False


def is_bcrypt_hash(password_hash: str | None) -> bool:
    """
    True when password_hash is a well-formed bcrypt hash.

    Rows written outside this service (plaintext or other schemes) fail
    here and can be repaired with `flask stores verify --fix`.
    """
    if not password_hash:
        return False

    try:
        bcrypt.checkpw(b"", password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False
    return True


def authenticate(login: str, password: str):
    """
    Authenticate a store with its login and password.

    Returns the Store if credentials are valid, None otherwise.
    """
    if not login:
        return None

    store = db.session.query(Store).filter_by(login=login).first()
    if not store:
        return None

    if verify_password(password, store.password_hash):
        return store

    current_app.logger.info("Rejected password for store login %r", login)
    return None
