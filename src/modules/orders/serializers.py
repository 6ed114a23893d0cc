"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.catalog.constants import PRODUCT_ID_MAX_LENGTH
from modules.orders.constants import OrderStatus

# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ShippingAddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100, required=False, allow_null=True, default=None)
    zip = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100, required=False, default="USA")


# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.CharField(max_length=PRODUCT_ID_MAX_LENGTH)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        allow_null=True,
        default=None,
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    customer_id = serializers.CharField(max_length=64)
    payment_method = serializers.CharField(
        max_length=50, required=False, default="", allow_blank=True
    )
    shipping_address = ShippingAddressSerializer(required=False, allow_null=True, default=None)
    items = CreateOrderItemSerializer(many=True, allow_empty=False)


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.Serializer):
    """Read serializer for ``OrderItemOutputDTO``."""

    product_id = serializers.CharField()
    title = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)


class StatusHistorySerializer(serializers.Serializer):
    """Read serializer for ``StatusHistoryDTO``."""

    id = serializers.UUIDField()
    old_status = serializers.CharField(allow_null=True)
    new_status = serializers.CharField()
    notes = serializers.CharField(allow_blank=True)
    created_at = serializers.DateTimeField()


class OrderSerializer(serializers.Serializer):
    """Read serializer for ``OrderOutputDTO`` with nested items and history."""

    order_id = serializers.CharField()
    customer_id = serializers.CharField()
    status = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_method = serializers.CharField(allow_blank=True)
    shipping_address = ShippingAddressSerializer(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()
    items = OrderItemSerializer(many=True)
    history = StatusHistorySerializer(many=True)
