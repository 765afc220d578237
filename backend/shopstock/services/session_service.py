# Overview: Bearer session issue, validation and revocation.

"""
Session tokens for the API.

A token is handed to the client once at login/registration; only its
SHA-256 digest is stored. Each request re-validates the token and the
resolved user lives on flask.g for that request only.

Lifetime rules:
- absolute: SESSION_ABSOLUTE_TIMEOUT after creation
- idle: SESSION_IDLE_TIMEOUT_MINUTES since last use (config, default 120)
- deactivated users lose their sessions on next use
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..errors import UserNotFoundError
from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)


@dataclass
class SessionContext:
    """Resolved identity for one authenticated request."""
    user: User
    session: SessionToken


def _idle_limit() -> timedelta:
    return timedelta(minutes=current_app.config.get("SESSION_IDLE_TIMEOUT_MINUTES", 120))


def generate_token() -> str:
    """64 hex chars (32 random bytes). Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # Tokens are high-entropy, so a fast digest is enough (unlike passwords)
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _active_session(token: str) -> SessionToken | None:
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token), is_revoked=False,
    ).first()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Open a session for user_id. Returns (record, plaintext_token)."""
    if db.session.get(User, user_id) is None:
        raise UserNotFoundError("User not found", details={"user_id": user_id})

    token = generate_token()
    issued_at = utcnow()
    record = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=issued_at,
        last_used_at=issued_at,
        expires_at=issued_at + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
    )
    db.session.add(record)
    db.session.commit()
    return record, token


def _mark_revoked(record: SessionToken, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its user, or None.

    A successful check refreshes last_used_at. Idle sessions and sessions
    of deactivated users are revoked on the way out.
    """
    record = _active_session(token)
    if record is None:
        return None

    now = utcnow()
    if record.expires_at < now:
        return None
    if now - record.last_used_at > _idle_limit():
        _mark_revoked(record, "Idle timeout")
        return None

    user = record.user
    if user is None or not user.is_active:
        _mark_revoked(record, "User account deactivated")
        return None

    record.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=record)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token is unknown or already revoked."""
    record = _active_session(token)
    if record is None:
        return False
    _mark_revoked(record, reason)
    return True


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """Delete expired or revoked sessions created before the cutoff. Returns count."""
    now = utcnow()
    removed = db.session.query(SessionToken).filter(
        db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
        SessionToken.created_at < now - timedelta(days=older_than_days),
    ).delete(synchronize_session=False)
    db.session.commit()
    return removed
