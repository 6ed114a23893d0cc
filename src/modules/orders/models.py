"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- Order id is a human-readable business identifier (``ORD-XXXXXXXX``)
  generated on first save, retried on collision.
- Status moves only through the transition table (enforced at service layer).
- Each status change generates a history record.
- Idempotency via ``idempotency_key`` unique constraint.
- OrderItem snapshots the unit price at creation time.
- OrderItem subtotal is always ``quantity * unit_price`` (calculated on save).
- Order total is always the sum of its item subtotals.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

import secrets
import string
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from pydantic import ValidationError as PydanticValidationError

from modules.catalog.constants import PRODUCT_ID_MAX_LENGTH
from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import (
    DELETABLE_STATES,
    ORDER_ID_MAX_RETRIES,
    ORDER_ID_PREFIX,
    ORDER_ID_SUFFIX_LENGTH,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin

if TYPE_CHECKING:
    from modules.orders.dtos import ShippingAddressDTO

logger = structlog.get_logger(__name__)

_ORDER_ID_ALPHABET = string.ascii_uppercase + string.digits


class Order(DomainEventMixin, SoftDeleteModel):
    """Order aggregate root.

    ``id`` is generated on first save (format: ``ORD-XXXXXXXX``) and is used
    for every reference and API lookup.

    ``shipping_address`` is stored as opaque JSON and parsed on read; a
    stored value that no longer parses is reported as ``None``.

    ``idempotency_key`` is nullable: only orders created via the public API
    carry a client-provided key.  Unique columns allow multiple NULLs, so
    orders without a key never collide.
    """

    id: models.CharField = models.CharField(
        primary_key=True,
        max_length=len(ORDER_ID_PREFIX) + ORDER_ID_SUFFIX_LENGTH,
        editable=False,
    )
    customer_id: models.CharField = models.CharField(max_length=64, db_index=True)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    payment_method: models.CharField = models.CharField(max_length=50, blank=True, default="")
    shipping_address: models.JSONField = models.JSONField(null=True, blank=True)
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    @property
    def is_deletable(self) -> bool:
        return self.status in DELETABLE_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def calculate_total(self) -> Decimal:
        """Sum of item subtotals (``Decimal('0.00')`` for an order without items)."""
        return sum((item.subtotal for item in self.items.all()), Decimal("0.00"))

    @property
    def parsed_shipping_address(self) -> Optional[ShippingAddressDTO]:
        from modules.orders.dtos import ShippingAddressDTO

        if self.shipping_address is None:
            return None
        try:
            return ShippingAddressDTO.model_validate(self.shipping_address)
        except PydanticValidationError as exc:
            logger.warning(
                "order.shipping_address_unreadable",
                order_id=self.id,
                error_count=exc.error_count(),
            )
            return None

    # ------------------------------------------------------------------
    # Order id generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_id() -> str:
        """Generate an order id: ``ORD-`` + 8 uppercase alphanumerics."""
        suffix = "".join(
            secrets.choice(_ORDER_ID_ALPHABET) for _ in range(ORDER_ID_SUFFIX_LENGTH)
        )
        return f"{ORDER_ID_PREFIX}{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.id:
            for _ in range(ORDER_ID_MAX_RETRIES):
                candidate = self.generate_order_id()
                if not Order.objects.filter(id=candidate).exists():
                    self.id = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order id after "
                    f"{ORDER_ID_MAX_RETRIES} attempts"
                )
            kwargs.setdefault("force_insert", True)
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.id} ({self.status})"


class OrderItem(BaseModel):
    """Line item of an Order, referencing a catalog product by id.

    ``unit_price`` is a **snapshot** of the price resolved at creation time;
    it never changes even if the catalog price is updated later.
    ``subtotal`` is always ``quantity * unit_price``, recalculated on every save.
    Items are owned by their order and removed with it (CASCADE).
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_id: models.CharField = models.CharField(max_length=PRODUCT_ID_MAX_LENGTH)
    title: models.CharField = models.CharField(max_length=255, blank=True, default="")
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=0),
                name="order_items_unit_price_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError({"unit_price": "Unit price cannot be negative."})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.unit_price is None:
            raise ValidationError({"unit_price": "Unit price is required."})
        self.subtotal = (self.quantity * Decimal(self.unit_price)).quantize(Decimal("0.01"))
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} (${self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    Each record captures a single status change with optional notes
    (e.g. cancellation reason).  ``old_status`` is ``None`` for the record
    written when the order is created.

    Inherits ``BaseModel`` (not ``SoftDeleteModel``): audit records are
    immutable and never soft-deleted.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"
