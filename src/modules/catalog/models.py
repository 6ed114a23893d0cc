"""Product model: catalog entry plus its inventory counters.

Rules implemented:
- ``id`` is the catalog product id (e.g. ``B1`` or an ISBN); immutable.
- ``price`` is non-negative and nullable: a title may be catalogued
  before it is priced.
- ``available_quantity`` counts units physically on hand,
  ``reserved_quantity`` the units held for open orders.  The database
  enforces ``0 <= reserved_quantity <= available_quantity``.
- Counters are mutated only through ``InventoryLedger``.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.catalog.constants import PRODUCT_ID_MAX_LENGTH
from modules.core.models import TimeStampedModel

logger = structlog.get_logger(__name__)


class Product(TimeStampedModel):
    id = models.CharField(primary_key=True, max_length=PRODUCT_ID_MAX_LENGTH)
    title = models.CharField(max_length=255)
    author = models.CharField(max_length=255, blank=True, default="")
    category = models.CharField(max_length=100, blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    available_quantity = models.PositiveIntegerField(default=0)
    reserved_quantity = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "products"
        ordering = ["title"]
        indexes = [
            models.Index(fields=["category"], name="products_category_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__isnull=True) | models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(reserved_quantity__lte=models.F("available_quantity")),
                name="products_reserved_within_available",
            ),
        ]

    @property
    def free_quantity(self) -> int:
        """Units that can still be reserved."""
        return self.available_quantity - self.reserved_quantity

    def clean(self) -> None:
        super().clean()
        if self.price is not None and self.price < 0:
            raise ValidationError({"price": "Price cannot be negative."})
        if self.reserved_quantity > self.available_quantity:
            raise ValidationError(
                {"reserved_quantity": "Reserved quantity cannot exceed available quantity."}
            )

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=self.id,
                title=self.title,
                available_quantity=self.available_quantity,
            )

    def __str__(self) -> str:
        return f"{self.id} - {self.title}"
