from .auth import User, SessionToken
from .inventory import InventoryItem, ItemStatus, SELLABLE_STATUSES, can_transition
from .sales import Sale
from .security import SecurityEvent

__all__ = [
    'User', 'SessionToken',
    'InventoryItem', 'ItemStatus', 'SELLABLE_STATUSES', 'can_transition',
    'Sale',
    'SecurityEvent',
]
