"""Catalog API views.

Exposes ``CatalogService`` via HTTP using a DRF ViewSet.  Products are
read-only here: they are seeded externally and their counters change only
through the inventory operations.  Domain errors propagate to the project
exception handler, which maps them to HTTP status codes.
"""

from __future__ import annotations

from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.catalog.dtos import SearchCriteria
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.serializers import (
    InventoryStatusSerializer,
    InventoryUpdateSerializer,
    PriceQuoteQuerySerializer,
    PriceQuoteSerializer,
    ProductSearchSerializer,
    ProductSerializer,
)
from modules.catalog.services import CatalogService


class ProductViewSet(ViewSet):
    """ViewSet for catalog look-ups and inventory operations.

    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    lookup_value_regex = r"[^/]+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CatalogService(repository=ProductDjangoRepository())

    def list(self, request: Request) -> Response:
        """GET /api/v1/products/?title=&author=&category=&min_price=&max_price=&in_stock="""
        query = ProductSearchSerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        criteria = SearchCriteria(**query.validated_data)
        products = self._service.search(criteria)
        return Response(ProductSerializer(list(products), many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        product = self._service.find_by_id(pk or "")
        return Response(ProductSerializer(product).data)

    @action(detail=True, methods=["get"])
    def price(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/price/?quantity=N"""
        query = PriceQuoteQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        quote = self._service.get_product_price(pk or "", query.validated_data["quantity"])
        return Response(PriceQuoteSerializer(quote).data)

    @action(detail=True, methods=["get", "post"])
    def inventory(self, request: Request, pk: str | None = None) -> Response:
        """GET / POST /api/v1/products/{pk}/inventory/

        POST body: ``{"quantity": N, "operation": "RESERVE" | "RELEASE" | "DEDUCT"}``.
        """
        if request.method == "POST":
            body = InventoryUpdateSerializer(data=request.data)
            body.is_valid(raise_exception=True)
            self._service.update_inventory(
                pk or "",
                body.validated_data["quantity"],
                body.validated_data["operation"],
            )
        status_dto = self._service.check_inventory(pk or "")
        return Response(InventoryStatusSerializer(status_dto).data)
