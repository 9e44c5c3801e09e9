# Overview: Service-layer operations for session tokens; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: The frontend keeps an opaque bearer token after login and sends it on
every request. Tokens are cryptographically secure, hashed in database, and
time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS)
- Revocable on logout or password change
- Tracks client IP and user agent for security monitoring
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, Store
from vales.time_utils import as_naive_utc, utcnow


@dataclass
class SessionContext:
    """
    Per-request authentication context returned by validate_session.

    Routes receive it through flask.g; nothing about the current store is
    kept at process level.
    """
    store: Store
    session: SessionToken
    store_id: int


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 12))


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    store_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for a store.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.

    Raises ValueError if the store does not exist.
    """
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise ValueError("Store not found")

    plaintext_token = generate_token()

    now = utcnow()
    session = SessionToken(
        store_id=store_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str | None) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is unknown, revoked, past its absolute expiry,
    or idle for longer than the idle timeout (idle sessions are revoked).

    Updates last_used_at on successful validation.
    """
    if not token:
        return None

    now = utcnow()
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if as_naive_utc(session.expires_at) < now:
        return None

    if now - as_naive_utc(session.last_used_at) > _idle_timeout():
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    store = session.store
    if not store:
        _revoke(session, "Store removed")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(store=store, session=session, store_id=session.store_id)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_store_sessions(store_id: int, reason: str = "Revoke all sessions", *, commit: bool = True) -> int:
    """
    Revoke all active sessions for a store.

    Returns count of sessions revoked. Used after a password change so
    every device has to log in again.
    """
    sessions = db.session.query(SessionToken).filter_by(
        store_id=store_id,
        is_revoked=False
    ).all()

    for session in sessions:
        _revoke(session, reason)

    if commit:
        db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(*, retention_days: int = 30) -> int:
    """
    Delete expired and revoked sessions older than retention_days.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
