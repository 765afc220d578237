# Overview: Typed per-user permission record.

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace

from .roles import DEFAULT_ROLE_PERMISSIONS


@dataclass(frozen=True)
class PermissionSet:
    """
    Named capability flags for one user.

    Field names match the codes in PERMISSION_DEFINITIONS. A user either
    follows their role's defaults (no explicit record stored) or has an
    explicit record set by an admin, which then takes precedence.
    """
    can_view_inventory: bool = False
    can_add_inventory: bool = False
    can_edit_inventory: bool = False
    can_approve_inventory: bool = False
    can_delete_inventory: bool = False
    can_manage_users: bool = False

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def for_role(cls, role: str) -> "PermissionSet":
        granted = DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())
        return cls(**{name: name in granted for name in cls.field_names()})

    @classmethod
    def from_stored(cls, stored: dict | None, role: str) -> "PermissionSet":
        """
        Build the effective set from a stored JSON record.

        Flags missing from the record (e.g. added after it was saved) fall
        back to the role default; unknown keys are ignored.
        """
        base = cls.for_role(role)
        if not stored:
            return base
        known = {k: bool(v) for k, v in stored.items() if k in cls.field_names()}
        return replace(base, **known)

    def with_flags(self, **flags: bool) -> "PermissionSet":
        return replace(self, **flags)

    def has(self, code: str) -> bool:
        return bool(getattr(self, code, False))

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)
