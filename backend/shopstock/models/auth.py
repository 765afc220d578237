from __future__ import annotations

from ..extensions import db
from ..permissions import ROLES, PermissionSet
from ..time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    The role column drives admin gates and role defaults. The permissions
    column holds an explicit per-user capability record once an admin has
    set one; NULL means the user follows the defaults of their role.

    password_hash is NULL for accounts that authenticate through an external
    identity provider (firebase_uid). Such users cannot use password login.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "role IN (" + ", ".join(f"'{r}'" for r in ROLES) + ")",
            name="role_valid",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=True)

    # External identity link (stored only, never verified here)
    firebase_uid = db.Column(db.String(128), nullable=True, unique=True)

    role = db.Column(db.String(16), nullable=False, default="user", index=True)
    permissions = db.Column(db.JSON, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def effective_permissions(self) -> PermissionSet:
        return PermissionSet.from_stored(self.permissions, self.role)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "permissions": self.effective_permissions.to_dict(),
            "has_custom_permissions": self.permissions is not None,
            "has_password": self.password_hash is not None,
            "firebase_uid": self.firebase_uid,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer-token sessions.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256), plaintext returned once
    - 24-hour absolute timeout
    - Idle timeout from SESSION_IDLE_TIMEOUT_MINUTES
    - Revocable on logout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
