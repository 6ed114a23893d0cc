"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
Write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems) is persisted atomically.

Concurrency control on status updates uses ``select_for_update()``.
Domain events collected on the aggregate are published through the
event bus once the surrounding transaction commits.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.db import transaction
from django.db.models import QuerySet

from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from shared.domain.bus import IEventBus
from shared.infrastructure.bus import event_bus as default_event_bus

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def __init__(self, event_bus: Optional[IEventBus] = None) -> None:
        self._event_bus = event_bus or default_event_bus

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - ``customer_id`` (required)
        - ``items`` (required): list of dicts with ``product_id``,
          ``title``, ``quantity``, ``unit_price``
        - ``payment_method``, ``shipping_address``, ``idempotency_key``
          (optional)
        """
        order = Order(
            customer_id=data["customer_id"],
            payment_method=data.get("payment_method", ""),
            shipping_address=data.get("shipping_address"),
            idempotency_key=data.get("idempotency_key"),
        )
        order.save()

        total = Decimal("0.00")
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                product_id=item_data["product_id"],
                title=item_data.get("title", ""),
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            )
            item.save()
            total += item.subtotal

        order.total_amount = total
        order.save(update_fields=["total_amount"])

        log = logger.bind(order_id=order.id, item_count=len(items))
        log.info("order.persisted")

        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def queryset(self) -> QuerySet[Order]:
        """Live orders with items and history prefetched (lazy)."""
        return Order.objects.alive().prefetch_related("items", "status_history")

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve a live order with eager-loaded items and history.

        Returns ``None`` for non-existent or soft-deleted orders.
        """
        return self.queryset().filter(id=id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List live orders with optional filters.

        Supported filter keys:
        - ``status``
        - ``customer_id``
        """
        queryset = self.queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve a live order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items so the caller can iterate over them while the
        row is locked.  Must run inside ``transaction.atomic``.
        """
        return (
            Order.objects.alive()
            .select_for_update()
            .prefetch_related("items", "status_history")
            .filter(id=id)
            .first()
        )

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve a live order by its idempotency key."""
        return self.queryset().filter(idempotency_key=key).first()

    # ------------------------------------------------------------------
    # Save / Delete
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and schedule its domain events for publication."""
        entity.save()
        self._publish_on_commit(entity)
        logger.info("order.saved", order_id=entity.id, status=entity.status)
        return entity

    @transaction.atomic
    def delete(self, entity: Order) -> None:
        """Soft-delete an order and free its idempotency key for reuse."""
        if entity.idempotency_key:
            entity.idempotency_key = None
            entity.save(update_fields=["idempotency_key"])
        entity.delete()
        self._publish_on_commit(entity)
        logger.info("order.soft_deleted", order_id=entity.id)

    def _publish_on_commit(self, entity: Order) -> None:
        events = entity.domain_events
        entity.clear_domain_events()
        if events:
            transaction.on_commit(lambda: self._event_bus.publish_all(events))

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: str,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=order_id,
            old_status=old_status,
            new_status=status,
        )
        return history
