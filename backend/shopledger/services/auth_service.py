# Overview: Service-layer operations for auth; password hashing and profile management.

"""
Authentication Service

Uses bcrypt for password hashing. Authentication only establishes WHO the
caller is; WHAT they may do is decided by permission_service from the
profile's role alone.
"""

import bcrypt

from ..extensions import db
from ..errors import ValidationError, ConflictError, NotFoundError
from ..models import Profile, ROLES
from ..values import utcnow


MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def create_profile(*, email: str, full_name: str, password: str, role: str = "staff") -> Profile:
    if role not in ROLES:
        raise ValidationError(f"Unknown role {role!r}", details={"allowed": list(ROLES)})

    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if not full_name or not full_name.strip():
        raise ValidationError("full_name is required")

    if db.session.query(Profile).filter_by(email=email).first():
        raise ConflictError(f"Profile {email} already exists")

    profile = Profile(
        email=email,
        full_name=full_name.strip(),
        role=role,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.session.add(profile)
    db.session.commit()
    return profile


def set_role(profile_id: int, role: str) -> Profile:
    if role not in ROLES:
        raise ValidationError(f"Unknown role {role!r}", details={"allowed": list(ROLES)})
    profile = db.session.get(Profile, profile_id)
    if not profile:
        raise NotFoundError("Profile not found")
    profile.role = role
    db.session.commit()
    return profile


def authenticate(email: str, password: str) -> Profile | None:
    """Return the active profile matching the credentials, or None."""
    email = (email or "").strip().lower()
    profile = db.session.query(Profile).filter_by(email=email).first()
    if not profile or not profile.is_active:
        return None
    if not verify_password(password or "", profile.password_hash):
        return None

    profile.last_login_at = utcnow()
    db.session.commit()
    return profile
