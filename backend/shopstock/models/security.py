from __future__ import annotations

from ..extensions import db


class SecurityEvent(db.Model):
    """
    Security event audit log.

    Tracks permission denials, role and permission changes, and login
    attempts. Append-only: never update or delete.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # Nullable for anonymous

    # PERMISSION_DENIED, ROLE_CHANGED, PERMISSIONS_CHANGED, LOGIN_SUCCESS, LOGIN_FAILED, ...
    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/sales/bulk"
    action = db.Column(db.String(64), nullable=True)     # e.g., "DELETE", "can_manage_users"

    success = db.Column(db.Boolean, nullable=False)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("security_events", lazy=True))

    def __repr__(self) -> str:
        return f"<SecurityEvent id={self.id} type={self.event_type} user={self.user_id} success={self.success}>"
