"""Order repository interface.

Extends ``IRepository[Order]`` with methods required by the Order
aggregate: atomic creation with items, status history tracking,
row locking, soft deletion and idempotency-key look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    Soft-deleted orders are never returned by any read.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``customer_id`` and ``items`` (list of dicts
        with ``product_id``, ``title``, ``quantity``, ``unit_price``), and
        optionally ``payment_method``, ``shipping_address`` and
        ``idempotency_key``.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items and status history."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def delete(self, entity: Order) -> None:
        """Soft-delete an order."""

    @abstractmethod
    def add_history(
        self,
        order_id: str,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""
