"""Catalog DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).

- ``SearchCriteria``: optional filters for ``CatalogService.search``.
- ``ProductDTO``: product identity, descriptive fields and price.
- ``PriceQuote``: unit price × quantity for one product.
- ``InventoryStatus``: on-hand / reserved / free counters of one product.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, computed_field, field_validator, model_validator

if TYPE_CHECKING:
    from modules.catalog.models import Product


class SearchCriteria(BaseModel):
    """All fields are optional; an empty criteria matches every product."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    in_stock: Optional[bool] = None

    @field_validator("min_price", "max_price")
    @classmethod
    def price_bounds_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Price bounds cannot be negative.")
        return v

    @model_validator(mode="after")
    def bounds_are_ordered(self):
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price cannot be greater than max_price.")
        return self


class ProductDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    title: str
    author: str = ""
    category: str = ""
    price: Optional[Decimal] = None

    @classmethod
    def from_entity(cls, product: Product) -> ProductDTO:
        return cls(
            product_id=product.id,
            title=product.title,
            author=product.author,
            category=product.category,
            price=product.price,
        )


class PriceQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    unit_price: Decimal
    quantity: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity


class InventoryStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    available_quantity: int
    reserved_quantity: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def free_quantity(self) -> int:
        return self.available_quantity - self.reserved_quantity

    @computed_field  # type: ignore[prop-decorator]
    @property
    def in_stock(self) -> bool:
        return self.free_quantity > 0

    @classmethod
    def from_entity(cls, product: Product) -> InventoryStatus:
        return cls(
            product_id=product.id,
            available_quantity=product.available_quantity,
            reserved_quantity=product.reserved_quantity,
        )
