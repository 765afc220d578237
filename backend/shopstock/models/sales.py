from __future__ import annotations

from ..extensions import db
from ..money import format_money
from ..time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    One sale line against one inventory item.

    WHY: Every sale debits the item's quantity by exactly quantity_sold when
    created and credits it back by the same amount when deleted, so that
    item.quantity + sum(quantity_sold) stays constant for an item.

    unit_price is a snapshot taken at sale time, independent of later edits
    to the item's price. total_amount == quantity_sold * unit_price, rounded
    to cents. Rows are immutable after creation; they are only deleted.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity_sold >= 1", name="quantity_sold_positive"),
        db.CheckConstraint("unit_price > 0", name="unit_price_positive"),
        db.CheckConstraint("total_amount >= 0", name="total_amount_non_negative"),
        db.Index("ix_sales_item_created", "inventory_item_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    quantity_sold = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)

    sold_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)

    item = db.relationship("InventoryItem", backref=db.backref("sales", lazy=True))
    seller = db.relationship("User", foreign_keys=[sold_by])

    def __repr__(self) -> str:
        return f"<Sale id={self.id} item={self.inventory_item_id} qty={self.quantity_sold} total={self.total_amount}>"

    def to_dict(self) -> dict:
        item = self.item
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "product_name": item.product_name if item else None,
            "brand": item.brand if item else None,
            "sku": item.sku if item else None,
            "quantity_sold": self.quantity_sold,
            "unit_price": format_money(self.unit_price),
            "total_amount": format_money(self.total_amount),
            "sold_by": self.sold_by,
            "sold_by_name": self.seller.username if self.seller else None,
            "customer_name": self.customer_name,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
