from __future__ import annotations

from ..extensions import db
from ..values import to_utc_z


class SecurityEvent(db.Model):
    """
    Append-only log of denied authorization checks.

    IMMUTABLE: Never update or delete.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_profile_occurred", "profile_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    role = db.Column(db.String(16), nullable=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # AUTHORIZATION_DENIED, LOGIN_FAILED
    table_name = db.Column(db.String(64), nullable=True)
    operation = db.Column(db.String(16), nullable=True)
    reason = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "role": self.role,
            "event_type": self.event_type,
            "table_name": self.table_name,
            "operation": self.operation,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }
