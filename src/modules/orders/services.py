"""Order service layer (Use Cases).

Orchestrates order creation, status management, cancellation and
deletion against the catalog's inventory ledger.

Business rules enforced:
- Catalog price is authoritative; a caller-supplied price is only used
  for products without one, when ``ORDERS_ALLOW_PRICE_FALLBACK`` is on.
- Items are reserved one by one; a failure releases every reservation
  already made for the request (compensating rollback) before the
  order is rejected.
- Status changes follow ``VALID_TRANSITIONS``; the inventory effect in
  ``TRANSITION_INVENTORY_EFFECTS`` and the status change commit together.
- Orders can only be deleted while PENDING or CANCELLED.
- History is recorded on every status change.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import structlog
from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction

from modules.catalog.constants import InventoryOperation
from modules.core.exceptions import DependencyFailure, DomainError, InvalidInput
from modules.orders.constants import TRANSITION_INVENTORY_EFFECTS, OrderStatus
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderDeleted,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    InvalidOrderState,
    InvalidTransition,
    OrderNotFound,
    OrderRejected,
)

if TYPE_CHECKING:
    from modules.catalog.dtos import ProductDTO
    from modules.catalog.services import CatalogService
    from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.observability import IObservability

logger = structlog.get_logger(__name__)

Reservation = Tuple[str, int]


class OrderService:
    """Application service for Order use-cases.

    Receives the order repository and the catalog service via constructor
    injection (DIP).  Inventory changes always go through
    ``CatalogService.update_inventory``.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        catalog_service: CatalogService,
        observability: Optional[IObservability] = None,
        allow_price_fallback: Optional[bool] = None,
    ) -> None:
        self._order_repo = order_repository
        self._catalog = catalog_service
        self._log = observability or logger
        if allow_price_fallback is None:
            allow_price_fallback = settings.ORDERS_ALLOW_PRICE_FALLBACK
        self._allow_price_fallback = allow_price_fallback

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create a PENDING order, reserving stock for every item.

        Not a single database transaction: each reservation commits on its
        own, and failures are undone by explicit compensation.

        Steps:
        0. Idempotency: an order with the same key is returned unchanged.
        1. Resolve every item's product and unit price (no side effects).
        2. Reserve each item in request order; on failure release the
           reservations already made and reject the order.
        3. Persist order + items + initial history; on failure release
           every reservation.

        Raises:
            InvalidInput: an item has no price available.
            ProductNotFound: an item references an unknown product.
            OrderRejected: a reservation failed (``cause`` holds the error).
            DependencyFailure: the order could not be persisted.
        """
        self._log.info(
            "order.creation_started",
            customer_id=dto.customer_id,
            item_count=len(dto.items),
        )

        # 0. Idempotency check
        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                self._log.info(
                    "order.idempotency_hit",
                    order_id=existing.id,
                    key=dto.idempotency_key,
                )
                return existing

        # 1. Resolve prices
        lines = [self._resolve_line(item) for item in dto.items]

        # 2. Reserve
        reserved: List[Reservation] = []
        for line in lines:
            try:
                self._catalog.update_inventory(
                    line["product_id"], line["quantity"], InventoryOperation.RESERVE
                )
            except DomainError as exc:
                self._log.warning(
                    "order.reservation_failed",
                    customer_id=dto.customer_id,
                    product_id=line["product_id"],
                    quantity=line["quantity"],
                    code=exc.code,
                )
                self._compensate(reserved)
                raise OrderRejected(
                    f"Order rejected: {exc.message}", cause=exc
                ) from exc
            reserved.append((line["product_id"], line["quantity"]))

        # 3. Persist
        try:
            with transaction.atomic():
                order = self._order_repo.create(
                    {
                        "customer_id": dto.customer_id,
                        "items": lines,
                        "payment_method": dto.payment_method,
                        "shipping_address": (
                            dto.shipping_address.model_dump()
                            if dto.shipping_address
                            else None
                        ),
                        "idempotency_key": dto.idempotency_key,
                    }
                )
                self._order_repo.add_history(
                    order_id=order.id,
                    status=OrderStatus.PENDING,
                    notes="Order created",
                )
                order.add_domain_event(
                    OrderCreated(
                        aggregate_id=order.id,
                        customer_id=order.customer_id,
                        total_amount=str(order.total_amount),
                    )
                )
                self._order_repo.save(order)
        except DatabaseError as exc:
            self._log.error(
                "order.persist_failed",
                customer_id=dto.customer_id,
                error=str(exc),
            )
            self._compensate(reserved)
            if isinstance(exc, IntegrityError) and dto.idempotency_key:
                # A concurrent request with the same key won the race.
                existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
                if existing:
                    return existing
            raise DependencyFailure("Failed to persist order.") from exc

        self._log.info(
            "order.created",
            order_id=order.id,
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(order.id) or order

    @transaction.atomic
    def update_status(self, order_id: str, new_status: str, notes: str = "") -> Order:
        """Transition an order to a new status.

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating the transition, so concurrent status changes on
        the same order are serialised.

        Raises:
            OrderNotFound: order does not exist.
            InvalidInput: *new_status* is not a known status.
            InvalidTransition: transition is not allowed.
            InsufficientStock: a shipment deduction failed (nothing applied).
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        self.request_transition(order, new_status, notes)
        return self._order_repo.get_by_id(order_id) or order

    def cancel_order(self, order_id: str, notes: str = "") -> Order:
        """Cancel an order; reserved stock is released by the transition.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: the order can no longer be cancelled.
        """
        return self.update_status(order_id, OrderStatus.CANCELLED, notes or "Order cancelled")

    @transaction.atomic
    def request_transition(self, order: Order, new_status: str, notes: str = "") -> Order:
        """Validate and apply one status change on an already-loaded order.

        The inventory effect of the transition is applied to every item
        before the status is changed; any failure rolls the whole change
        back.
        """
        if new_status not in OrderStatus.values:
            raise InvalidInput(f"Unknown order status: {new_status}.")

        old_status = order.status
        if not order.can_transition_to(new_status):
            self._log.warning(
                "order.invalid_transition",
                order_id=order.id,
                current_status=old_status,
                new_status=new_status,
            )
            raise InvalidTransition(
                f"Invalid status transition from {old_status} to {new_status}."
            )

        effect = TRANSITION_INVENTORY_EFFECTS.get((old_status, new_status))
        if effect:
            self._apply_inventory_effect(order, effect)

        order.status = new_status
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=old_status,
                new_status=new_status,
            )
        )
        if new_status == OrderStatus.CANCELLED:
            order.add_domain_event(
                OrderCancelled(aggregate_id=order.id, previous_status=old_status)
            )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            notes=notes,
            old_status=old_status,
        )

        self._log.info(
            "order.status_updated",
            order_id=order.id,
            old_status=old_status,
            new_status=new_status,
        )
        return order

    @transaction.atomic
    def delete_order(self, order_id: str) -> None:
        """Soft-delete a PENDING or CANCELLED order.

        A PENDING order still holds reservations; they are released first.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderState: the order is not PENDING or CANCELLED.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        if not order.is_deletable:
            self._log.warning(
                "order.delete_not_allowed",
                order_id=order_id,
                status=order.status,
            )
            raise InvalidOrderState(f"Cannot delete order in status: {order.status}.")

        if order.status == OrderStatus.PENDING:
            self._apply_inventory_effect(order, InventoryOperation.RELEASE)

        order.add_domain_event(OrderDeleted(aggregate_id=order.id))
        self._order_repo.delete(order)
        self._log.info("order.deleted", order_id=order_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered by customer or status."""
        return self._order_repo.list(filters)

    def find_by_idempotency_key(self, key: Optional[str]) -> Optional[Order]:
        if not key:
            return None
        return self._order_repo.get_by_idempotency_key(key)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_line(self, item: CreateOrderItemDTO) -> Dict[str, Any]:
        product = self._catalog.find_by_id(item.product_id)
        return {
            "product_id": product.product_id,
            "title": product.title,
            "quantity": item.quantity,
            "unit_price": self._resolve_price(product, item),
        }

    def _resolve_price(self, product: ProductDTO, item: CreateOrderItemDTO) -> Decimal:
        if product.price is not None:
            return product.price
        if self._allow_price_fallback and item.price is not None:
            self._log.warning(
                "order.price_fallback_used",
                product_id=item.product_id,
                price=str(item.price),
            )
            return item.price
        raise InvalidInput(f"No price available for product {item.product_id}.")

    def _apply_inventory_effect(self, order: Order, operation: str) -> None:
        item_count = 0
        for item in order.items.all():
            self._catalog.update_inventory(item.product_id, item.quantity, operation)
            item_count += 1
        self._log.info(
            "order.inventory_applied",
            order_id=order.id,
            operation=operation,
            item_count=item_count,
        )

    def _compensate(self, reserved: List[Reservation]) -> None:
        """Release reservations made earlier in a failed create request."""
        for product_id, quantity in reversed(reserved):
            try:
                self._catalog.update_inventory(
                    product_id, quantity, InventoryOperation.RELEASE
                )
            except DomainError as exc:
                # Keep releasing the rest; the leftover is reported for manual repair.
                self._log.error(
                    "order.compensation_failed",
                    product_id=product_id,
                    quantity=quantity,
                    code=exc.code,
                )
        if reserved:
            self._log.info("order.compensated", reservation_count=len(reserved))
