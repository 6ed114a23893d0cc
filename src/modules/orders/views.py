"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions propagate to the project exception handler, which
translates them into HTTP status codes and the standard error shape.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.services import CatalogService
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    OrderOutputDTO,
    ShippingAddressDTO,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
)
from modules.orders.services import OrderService


def _render(order: Order) -> dict:
    return OrderSerializer(OrderOutputDTO.from_entity(order)).data


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    lookup_value_regex = r"[^/]+"
    filterset_class = OrderFilter
    filter_backends = [DjangoFilterBackend]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._repository = OrderDjangoRepository()
        self._service = OrderService(
            order_repository=self._repository,
            catalog_service=CatalogService(repository=ProductDjangoRepository()),
        )

    def get_queryset(self):
        return self._repository.queryset()

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttling scopes."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        idempotency_key = request.headers.get("Idempotency-Key") or None
        existing = self._service.find_by_idempotency_key(idempotency_key)
        if existing:
            return Response(_render(existing), status=status.HTTP_200_OK)

        data = create_serializer.validated_data
        address = data.get("shipping_address")
        dto = CreateOrderDTO(
            customer_id=data["customer_id"],
            payment_method=data.get("payment_method", ""),
            shipping_address=ShippingAddressDTO(**address) if address else None,
            items=[
                CreateOrderItemDTO(
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    price=item.get("price"),
                )
                for item in data["items"]
            ],
            idempotency_key=idempotency_key,
        )

        order = self._service.create_order(dto)
        return Response(_render(order), status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/?customer_id=&status=

        ``customerId`` is accepted as an alias of ``customer_id``.
        """
        orders = self.filter_queryset(self.get_queryset())
        return Response([_render(order) for order in orders])

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(pk or "")
        return Response(_render(order))

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/status/"""
        body = UpdateOrderStatusSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        order = self._service.update_status(
            order_id=pk or "",
            new_status=body.validated_data["status"],
            notes=body.validated_data["notes"],
        )
        return Response(_render(order))

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels an order and releases its reserved stock.
        """
        body = CancelOrderSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        order = self._service.cancel_order(
            order_id=pk or "",
            notes=body.validated_data["notes"],
        )
        return Response(_render(order))

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/

        Only PENDING or CANCELLED orders can be deleted.
        """
        self._service.delete_order(pk or "")
        return Response(status=status.HTTP_204_NO_CONTENT)
