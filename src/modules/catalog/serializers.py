"""Catalog DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.catalog.constants import InventoryOperation

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class ProductSearchSerializer(serializers.Serializer):
    """Validates search query parameters."""

    title = serializers.CharField(required=False, allow_blank=False)
    author = serializers.CharField(required=False, allow_blank=False)
    category = serializers.CharField(required=False, allow_blank=False)
    min_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.00"), required=False
    )
    max_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.00"), required=False
    )
    in_stock = serializers.BooleanField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        min_price, max_price = attrs.get("min_price"), attrs.get("max_price")
        if min_price is not None and max_price is not None and min_price > max_price:
            raise serializers.ValidationError(
                {"min_price": "min_price cannot be greater than max_price."}
            )
        return attrs


class PriceQuoteQuerySerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, default=1)


class InventoryUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    operation = serializers.ChoiceField(choices=InventoryOperation.choices)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class ProductSerializer(serializers.Serializer):
    """Read serializer for ``ProductDTO``."""

    product_id = serializers.CharField()
    title = serializers.CharField()
    author = serializers.CharField()
    category = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)


class PriceQuoteSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    quantity = serializers.IntegerField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)


class InventoryStatusSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    available_quantity = serializers.IntegerField()
    reserved_quantity = serializers.IntegerField()
    free_quantity = serializers.IntegerField()
    in_stock = serializers.BooleanField()
