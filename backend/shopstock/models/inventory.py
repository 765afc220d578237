from __future__ import annotations

import enum

from ..extensions import db
from ..errors import InvalidStatusError
from ..money import format_money
from ..time_utils import to_utc_z, utcnow


class ItemStatus(str, enum.Enum):
    """
    Inventory item lifecycle.

    pending  -> approved | rejected
    approved -> rejected
    rejected is terminal for approve/reject.

    Only approved and pending items can be sold against.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value) -> "ItemStatus":
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise InvalidStatusError(
                f"Invalid status: {value}. Must be one of: {allowed}",
                details={"status": value},
            )

    @property
    def is_sellable(self) -> bool:
        return self in SELLABLE_STATUSES


SELLABLE_STATUSES = frozenset({ItemStatus.PENDING, ItemStatus.APPROVED})

_ALLOWED_TRANSITIONS = {
    ItemStatus.PENDING: frozenset({ItemStatus.APPROVED, ItemStatus.REJECTED}),
    ItemStatus.APPROVED: frozenset({ItemStatus.REJECTED}),
    ItemStatus.REJECTED: frozenset(),
}


def can_transition(current: ItemStatus, target: ItemStatus) -> bool:
    return target in _ALLOWED_TRANSITIONS[current]


class InventoryItem(db.Model):
    """
    Stock held for one product.

    quantity is the live on-hand count. It is changed only by manual edits
    (owner/admin) and by the sales service, which debits it on sale creation
    and credits it back on sale deletion in the same transaction as the sale
    row itself. The CHECK constraint is the last line of defence against
    negative stock.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        db.CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="unit_price_non_negative"),
        db.Index("ix_inventory_items_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    brand = db.Column(db.String(120), nullable=True)
    sku = db.Column(db.String(64), nullable=True, index=True)
    description = db.Column(db.Text, nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ItemStatus.PENDING.value, index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    creator = db.relationship("User", foreign_keys=[created_by])
    approver = db.relationship("User", foreign_keys=[approved_by])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.product_name!r} qty={self.quantity} status={self.status}>"

    @property
    def item_status(self) -> ItemStatus:
        return ItemStatus(self.status)

    def transition_to(self, target: ItemStatus) -> bool:
        """
        Move to target status if the transition table allows it.

        Returns False when the item is already in the target status (no-op),
        raises InvalidStatusError for illegal transitions.
        """
        current = self.item_status
        if current == target:
            return False
        if not can_transition(current, target):
            raise InvalidStatusError(
                f"Cannot change item status from {current.value} to {target.value}",
                details={"status": current.value, "target": target.value},
            )
        self.status = target.value
        return True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "category": self.category,
            "brand": self.brand,
            "sku": self.sku,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": format_money(self.unit_price),
            "status": self.status,
            "created_by": self.created_by,
            "created_by_name": self.creator.username if self.creator else None,
            "approved_by": self.approved_by,
            "approved_by_name": self.approver.username if self.approver else None,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
