"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``ShippingAddressDTO``: structured delivery address.
- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``OrderItemOutputDTO``: output for a single line item.
- ``StatusHistoryDTO``: output for a status history record.
- ``OrderOutputDTO``: output with items and history.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem, OrderStatusHistory


CENTS = Decimal("0.01")


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class ShippingAddressDTO(BaseModel):
    """Delivery address; ``street``, ``city`` and ``zip`` are required."""

    model_config = ConfigDict(frozen=True)

    street: str
    city: str
    state: Optional[str] = None
    zip: str
    country: str = "USA"


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item in a creation request.

    ``price`` is optional: the catalog price is authoritative and the
    caller's value is only a fallback for products without one.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    quantity: int
    price: Optional[Decimal] = None

    @field_validator("product_id")
    @classmethod
    def product_id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Product ID cannot be empty.")
        return v

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("price")
    @classmethod
    def price_non_negative_in_cents(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is None:
            return v
        if v < 0:
            raise ValueError("Price cannot be negative.")
        if v != v.quantize(CENTS):
            raise ValueError("Price cannot have more than 2 decimal places.")
        return v.quantize(CENTS)


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``customer_id`` is not blank.
    - ``items`` must contain at least one item.
    - Each item quantity must be positive.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: str
    items: List[CreateOrderItemDTO]
    payment_method: str = ""
    shipping_address: Optional[ShippingAddressDTO] = None
    idempotency_key: Optional[str] = None

    @field_validator("customer_id")
    @classmethod
    def customer_id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Customer ID cannot be empty.")
        return v

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderItemOutputDTO(BaseModel):
    """Immutable DTO for order item API responses."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    title: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    @classmethod
    def from_entity(cls, item: OrderItem) -> OrderItemOutputDTO:
        return cls(
            product_id=item.product_id,
            title=item.title,
            quantity=item.quantity,
            unit_price=item.unit_price,
            subtotal=item.subtotal,
        )


class StatusHistoryDTO(BaseModel):
    """Immutable DTO for order status history API responses."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    old_status: Optional[str]
    new_status: str
    notes: str
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            id=history.id,
            old_status=history.old_status,
            new_status=history.new_status,
            notes=history.notes,
            created_at=history.created_at,
        )


class OrderOutputDTO(BaseModel):
    """Immutable DTO for order API responses."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    customer_id: str
    status: str
    total_amount: Decimal
    payment_method: str
    shipping_address: Optional[ShippingAddressDTO]
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOutputDTO]
    history: List[StatusHistoryDTO]

    @classmethod
    def from_entity(cls, order: Order) -> OrderOutputDTO:
        """Build an output DTO from an Order model instance.

        Assumes ``items`` and ``status_history`` are prefetched.
        """
        return cls(
            order_id=order.id,
            customer_id=order.customer_id,
            status=order.status,
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            shipping_address=order.parsed_shipping_address,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[OrderItemOutputDTO.from_entity(item) for item in order.items.all()],
            history=[StatusHistoryDTO.from_entity(h) for h in order.status_history.all()],
        )
