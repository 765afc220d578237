# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking, Role Changes and Security Event Logging

WHY: Enforce role-based access control and create an audit trail.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit grant
- Log denials only: permission grants are not logged
- Admin-only endpoints gate on the role column; capability checks use the
  effective PermissionSet (explicit record, else role defaults)
- At least one admin must always exist
"""

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    InvalidInputError,
    InvariantViolationError,
    PermissionDeniedError,
    UserNotFoundError,
)
from ..extensions import db
from ..models import SecurityEvent, User
from ..permissions import ROLE_ADMIN, ROLES, PermissionSet, validate_role
from .concurrency import begin_write_transaction, commit_or_conflict, lock_for_update
from ..time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Append a security event to the audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_SUCCESS / LOGIN_FAILED
    - LOGOUT
    - USER_REGISTERED
    - ROLE_CHANGED
    - PERMISSIONS_CHANGED

    commit=False adds the event to the caller's open transaction so it is
    written (or rolled back) together with the change it describes.
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        occurred_at=utcnow()
    )

    db.session.add(event)
    if commit:
        db.session.commit()

    return event


def get_effective_permissions(user: User) -> PermissionSet:
    """Explicit per-user record when set, otherwise the role defaults."""
    return PermissionSet.from_stored(user.permissions, user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    return get_effective_permissions(user).has(permission_code)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to have a capability, raise PermissionDeniedError if not.

    Usage:
        require_permission(g.current_user, "can_add_inventory", resource=request.path)
    """
    if user_has_permission(user, permission_code):
        return

    log_security_event(
        user_id=user.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(
        f"Permission denied: {permission_code}",
        details={"required_permission": permission_code},
    )


def require_admin(
    user: User,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Require the admin role, raise PermissionDeniedError if not."""
    if user.is_admin:
        return

    log_security_event(
        user_id=user.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action="ROLE_ADMIN",
        reason="Admin role required",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError("Admin access required", details={"required_role": ROLE_ADMIN})


def _get_user_locked(user_id: int) -> User:
    user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
    if not user:
        raise UserNotFoundError("User not found", details={"user_id": user_id})
    return user


def apply_role_defaults(user: User) -> None:
    """Drop the explicit permission record so the user follows role defaults."""
    user.permissions = None
    db.session.commit()


def change_role(target_user_id: int, new_role: str, actor: User | None) -> tuple[User, bool]:
    """
    Change a user's role.

    Guards, checked in this order inside one write transaction:
    1. new_role must be a known role
    2. an admin may not demote themselves
    3. the last remaining admin may not be demoted

    actor is None for operator actions (CLI); the self-demotion guard then
    does not apply.

    After the role change commits, the role defaults are re-applied to the
    user's permission record. That second step is best effort: if it fails
    the role change stands, the failure is logged, and the returned flag
    is False.

    Returns (user, permissions_reset).
    """
    if not validate_role(new_role):
        raise InvalidInputError(
            f"Invalid role. Must be one of: {', '.join(ROLES)}",
            details={"role": new_role},
        )

    begin_write_transaction()
    try:
        target = _get_user_locked(target_user_id)
        old_role = target.role
        demoting_admin = old_role == ROLE_ADMIN and new_role != ROLE_ADMIN

        if demoting_admin and actor is not None and target.id == actor.id:
            raise InvariantViolationError(
                "You cannot remove your own admin role",
                details={"user_id": target.id},
            )

        if demoting_admin:
            admins = lock_for_update(
                db.session.query(User).filter(User.role == ROLE_ADMIN, User.is_active.is_(True))
            ).all()
            if not [a for a in admins if a.id != target.id]:
                raise InvariantViolationError(
                    "Cannot remove the last admin. At least one admin must exist.",
                    details={"user_id": target.id},
                )

        target.role = new_role
        log_security_event(
            user_id=actor.id if actor else None,
            event_type="ROLE_CHANGED",
            success=True,
            resource=f"users/{target.id}",
            action="change_role",
            reason=f"{old_role} -> {new_role}",
            commit=False,
        )
    except Exception:
        db.session.rollback()
        raise
    commit_or_conflict("User")

    try:
        apply_role_defaults(target)
        permissions_reset = True
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Role for user %s changed to %s but applying role default permissions failed",
            target.id, new_role, exc_info=True,
        )
        permissions_reset = False

    return target, permissions_reset


def set_permissions(
    target_user_id: int,
    flags: dict,
    actor: User,
    reset: bool = False,
) -> User:
    """
    Update a user's explicit permission record.

    flags is a partial mapping of PermissionSet field -> bool applied on top
    of the user's current effective set. reset=True drops the explicit
    record so the user follows role defaults again.
    """
    if not isinstance(flags, dict):
        raise InvalidInputError("permissions must be an object of flag -> boolean")

    known = PermissionSet.field_names()
    unknown = sorted(k for k in flags if k not in known)
    if unknown:
        raise InvalidInputError(
            f"Unknown permission(s): {', '.join(unknown)}",
            details={"unknown": unknown, "allowed": list(known)},
        )
    not_bool = sorted(k for k, v in flags.items() if not isinstance(v, bool))
    if not_bool:
        raise InvalidInputError(
            f"Permission values must be true or false: {', '.join(not_bool)}",
            details={"invalid": not_bool},
        )

    begin_write_transaction()
    try:
        target = _get_user_locked(target_user_id)

        if reset:
            target.permissions = None
            reason = "reset to role defaults"
        else:
            updated = get_effective_permissions(target).with_flags(**flags)
            target.permissions = updated.to_dict()
            reason = ", ".join(f"{k}={v}" for k, v in sorted(flags.items())) or "no change"

        log_security_event(
            user_id=actor.id,
            event_type="PERMISSIONS_CHANGED",
            success=True,
            resource=f"users/{target.id}",
            action="set_permissions",
            reason=reason,
            commit=False,
        )
    except Exception:
        db.session.rollback()
        raise
    commit_or_conflict("User")
    return target
