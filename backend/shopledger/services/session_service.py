# Overview: Service-layer operations for session tokens.

"""
Session Token Management

- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute timeout from SESSION_TTL_HOURS
- Revocable on logout
"""

import hashlib
import secrets
from datetime import timedelta, timezone

from flask import current_app

from ..extensions import db
from ..models import SessionToken, Profile
from ..values import utcnow


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(profile_id: int) -> tuple[SessionToken, str]:
    """
    Create a session for profile_id.

    Returns (session_record, plaintext_token). Only the hash is stored.
    """
    plaintext_token = generate_token()
    ttl_hours = current_app.config.get("SESSION_TTL_HOURS", 12)

    session = SessionToken(
        profile_id=profile_id,
        token_hash=hash_token(plaintext_token),
        expires_at=utcnow() + timedelta(hours=ttl_hours),
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def validate_session(token: str) -> Profile | None:
    """Return the active profile for token, or None if invalid/expired/revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None
    expires_at = session.expires_at
    if expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
    if expires_at < utcnow():
        return None

    profile = session.profile
    if not profile or not profile.is_active:
        return None
    return profile


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.commit()
    return True
