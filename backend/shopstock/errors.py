# Overview: Typed error hierarchy shared by services and routes.

"""
Every domain error carries:
- code: machine-readable identifier (stable, API-safe)
- status_code: HTTP status the routes respond with
- details: structured data for the client (never parse the message)

Routes catch ShopError and serialize with to_dict(). Anything else is an
unexpected failure and becomes a logged 500.

    ShopError
    +-- InvalidInputError                 400
    |   +-- InvalidQuantityOrPriceError   400
    +-- InvalidStatusError                400
    +-- InsufficientStockError            400
    +-- PermissionDeniedError             403
    +-- NotFoundError                     404
    |   +-- ItemNotFoundError
    |   +-- SaleNotFoundError
    |   +-- UserNotFoundError
    +-- InvariantViolationError           409
    +-- ConcurrentModificationError       409
"""

from __future__ import annotations


class ShopError(Exception):
    """Base class for all expected, client-visible failures."""

    code = "SHOP_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidInputError(ShopError):
    code = "INVALID_INPUT"
    status_code = 400


class InvalidQuantityOrPriceError(InvalidInputError):
    code = "INVALID_QUANTITY_OR_PRICE"


class InvalidStatusError(ShopError):
    """Illegal item status transition, or a stock operation on a rejected item."""

    code = "INVALID_STATUS"
    status_code = 400


class InsufficientStockError(ShopError):
    code = "INSUFFICIENT_STOCK"
    status_code = 400

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient quantity. Available: {available}, Requested: {requested}",
            details={"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class PermissionDeniedError(ShopError):
    code = "PERMISSION_DENIED"
    status_code = 403


class NotFoundError(ShopError):
    code = "NOT_FOUND"
    status_code = 404


class ItemNotFoundError(NotFoundError):
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_id: int):
        super().__init__("Item not found", details={"inventory_item_id": item_id})
        self.item_id = item_id


class SaleNotFoundError(NotFoundError):
    code = "SALE_NOT_FOUND"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"


class InvariantViolationError(ShopError):
    """A business invariant would be broken (last admin, self-demotion, ...)."""

    code = "INVARIANT_VIOLATION"
    status_code = 409


class ConcurrentModificationError(ShopError):
    code = "CONCURRENT_MODIFICATION"
    status_code = 409
