"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderDeleted,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=event.aggregate_id,
            customer_id=event.customer_id,
            total_amount=event.total_amount,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=event.aggregate_id,
            previous_status=event.previous_status,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=event.aggregate_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderDeletedHandler(IEventHandler[OrderDeleted]):
    def handle(self, event: OrderDeleted) -> None:
        logger.info("order.event.deleted", order_id=event.aggregate_id)


order_created_handler = OrderCreatedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_deleted_handler = OrderDeletedHandler()
