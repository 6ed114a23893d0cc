"""Order domain constants.

Defines status choices, the transition table of the order state machine,
and the inventory side effect attached to each transition.  Both tables are
plain data: the service looks them up, it never hard-codes a transition.
"""

from django.db import models

from modules.catalog.constants import InventoryOperation


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

DELETABLE_STATES: set[str] = {OrderStatus.PENDING, OrderStatus.CANCELLED}

# (old, new) -> ledger operation applied to every item; absent means no effect.
TRANSITION_INVENTORY_EFFECTS: dict[tuple[str, str], str] = {
    (OrderStatus.PENDING, OrderStatus.CANCELLED): InventoryOperation.RELEASE,
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED): InventoryOperation.RELEASE,
    (OrderStatus.CONFIRMED, OrderStatus.SHIPPED): InventoryOperation.DEDUCT,
}

ORDER_ID_PREFIX = "ORD-"
ORDER_ID_SUFFIX_LENGTH = 8
ORDER_ID_MAX_RETRIES = 5
