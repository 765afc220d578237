"""
Inventory item lifecycle tests: visibility, ownership gate, status
transitions and validation.
"""

from decimal import Decimal

import pytest

from shopstock.errors import (
    InvalidInputError,
    InvalidStatusError,
    InvariantViolationError,
    ItemNotFoundError,
    PermissionDeniedError,
)
from shopstock.extensions import db
from shopstock.models import InventoryItem, ItemStatus
from shopstock.services import inventory_service, sales_service


class TestCreateItem:

    def test_new_items_are_pending_even_for_admins(self, admin):
        item = inventory_service.create_item(
            {"product_name": "Lamp", "quantity": 3, "unit_price": "19.99", "status": "approved"}, admin,
        )
        assert item.status == ItemStatus.PENDING.value
        assert item.created_by == admin.id
        assert item.unit_price == Decimal("19.99")
        assert item.approved_at is None

    def test_required_fields(self, user):
        with pytest.raises(InvalidInputError, match="product_name"):
            inventory_service.create_item({"quantity": 1}, user)

    def test_negative_quantity(self, user):
        with pytest.raises(InvalidInputError):
            inventory_service.create_item({"product_name": "Lamp", "quantity": -1}, user)

    def test_unknown_field(self, user):
        with pytest.raises(InvalidInputError, match="Field not allowed"):
            inventory_service.create_item({"product_name": "Lamp", "quantity": 1, "created_by": 99}, user)

    def test_bad_price(self, user):
        with pytest.raises(InvalidInputError):
            inventory_service.create_item({"product_name": "Lamp", "quantity": 1, "unit_price": "cheap"}, user)

    @pytest.mark.parametrize("price", ["1e30", "-1e30"])
    def test_out_of_range_price(self, user, price):
        with pytest.raises(InvalidInputError, match="unit_price"):
            inventory_service.create_item({"product_name": "Lamp", "quantity": 1, "unit_price": price}, user)


class TestVisibility:

    def test_user_sees_approved_and_own(self, admin, user, other_user, make_item):
        approved = make_item(admin, product_name="Approved")
        own_pending = make_item(user, product_name="Mine", status=ItemStatus.PENDING)
        make_item(other_user, product_name="Theirs", status=ItemStatus.PENDING)
        make_item(other_user, product_name="Rejected", status=ItemStatus.REJECTED)
        make_item(user, product_name="MyRejected", status=ItemStatus.REJECTED)

        names = {i.product_name for i in inventory_service.list_items(user)}

        assert names == {approved.product_name, own_pending.product_name}

    def test_own_rejected_item_fetchable_but_not_listed(self, user, make_item):
        item = make_item(user, product_name="MyRejected", status=ItemStatus.REJECTED)

        assert inventory_service.get_item(item.id, user).id == item.id
        assert inventory_service.list_items(user, status="rejected") == []

    def test_admin_sees_everything(self, admin, other_user, make_item):
        make_item(other_user, status=ItemStatus.PENDING)
        make_item(other_user, status=ItemStatus.REJECTED)
        assert len(inventory_service.list_items(admin)) == 2

    def test_get_hidden_item_denied(self, user, other_user, make_item):
        item = make_item(other_user, status=ItemStatus.PENDING)
        with pytest.raises(PermissionDeniedError):
            inventory_service.get_item(item.id, user)

    def test_get_missing_item(self, admin):
        with pytest.raises(ItemNotFoundError):
            inventory_service.get_item(404, admin)

    def test_search_and_status_filter(self, admin, make_item):
        make_item(admin, product_name="Blue Mug", brand="Acme")
        make_item(admin, product_name="Red Plate", sku="RP-100_X")
        make_item(admin, product_name="Blue Bowl", status=ItemStatus.PENDING)

        assert {i.product_name for i in inventory_service.list_items(admin, search="blue")} == {"Blue Mug", "Blue Bowl"}
        assert [i.product_name for i in inventory_service.list_items(admin, search="acme")] == ["Blue Mug"]
        assert [i.product_name for i in inventory_service.list_items(admin, search="100_x")] == ["Red Plate"]
        assert inventory_service.list_items(admin, search="%") == []
        assert [i.product_name for i in inventory_service.list_items(admin, status="pending")] == ["Blue Bowl"]

    def test_invalid_status_filter(self, admin):
        with pytest.raises(InvalidStatusError):
            inventory_service.list_items(admin, status="archived")


class TestOwnershipGate:

    def test_owner_can_edit_pending(self, user, make_item):
        item = make_item(user, quantity=1, status=ItemStatus.PENDING)
        updated = inventory_service.update_item(item.id, {"quantity": 8, "brand": "Acme"}, user)
        assert updated.quantity == 8
        assert updated.brand == "Acme"

    def test_owner_cannot_edit_approved(self, user, make_item):
        item = make_item(user, status=ItemStatus.APPROVED)
        with pytest.raises(PermissionDeniedError, match="your own pending items"):
            inventory_service.update_item(item.id, {"quantity": 1}, user)

    def test_non_owner_cannot_edit(self, user, other_user, make_item):
        item = make_item(other_user, status=ItemStatus.PENDING)
        with pytest.raises(PermissionDeniedError):
            inventory_service.update_item(item.id, {"quantity": 1}, user)

    def test_non_admin_cannot_set_status(self, user, make_item):
        item = make_item(user, status=ItemStatus.PENDING)
        with pytest.raises(PermissionDeniedError, match="Only admins"):
            inventory_service.update_item(item.id, {"status": "approved"}, user)

    def test_admin_status_override_stamps_approval(self, admin, user, make_item):
        item = make_item(user, status=ItemStatus.PENDING)
        updated = inventory_service.update_item(item.id, {"status": "approved"}, admin)
        assert updated.status == "approved"
        assert updated.approved_by == admin.id
        assert updated.approved_at is not None

    def test_owner_delete_pending(self, user, make_item):
        item = make_item(user, status=ItemStatus.PENDING)
        inventory_service.delete_item(item.id, user)
        assert db.session.get(InventoryItem, item.id) is None

    def test_owner_cannot_delete_approved(self, user, make_item):
        item = make_item(user, status=ItemStatus.APPROVED)
        with pytest.raises(PermissionDeniedError, match="delete your own pending items"):
            inventory_service.delete_item(item.id, user)

    def test_item_with_sales_is_kept(self, admin, user, make_item):
        item = make_item(admin)
        sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": 1, "unit_price": "1"}, user)
        with pytest.raises(InvariantViolationError):
            inventory_service.delete_item(item.id, admin)
        assert db.session.get(InventoryItem, item.id) is not None


class TestStatusTransitions:

    def test_approve_stamps_and_is_idempotent(self, admin, manager, user, make_item):
        item = make_item(user, status=ItemStatus.PENDING)

        approved = inventory_service.approve_item(item.id, admin)
        first_stamp = approved.approved_at
        assert approved.status == "approved"
        assert approved.approved_by == admin.id

        again = inventory_service.approve_item(item.id, manager)
        assert again.approved_by == admin.id
        assert again.approved_at == first_stamp

    def test_reject_then_approve_fails(self, admin, user, make_item):
        item = make_item(user, status=ItemStatus.PENDING)
        inventory_service.reject_item(item.id, admin)
        with pytest.raises(InvalidStatusError):
            inventory_service.approve_item(item.id, admin)

    def test_reject_approved_item(self, admin, make_item):
        item = make_item(admin, status=ItemStatus.APPROVED)
        assert inventory_service.reject_item(item.id, admin).status == "rejected"

    def test_pending_queue(self, admin, user, make_item):
        make_item(user, product_name="Queued", status=ItemStatus.PENDING)
        make_item(admin, product_name="Live")
        assert [i.product_name for i in inventory_service.list_pending()] == ["Queued"]
