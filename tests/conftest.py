from __future__ import annotations

from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from modules.catalog.models import Product
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.services import CatalogService
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    """Factory creating catalog products with sensible defaults."""

    def _make(
        product_id: str = "B1",
        *,
        title: str | None = None,
        author: str = "",
        category: str = "",
        price: Decimal | None = Decimal("10.00"),
        available: int = 5,
        reserved: int = 0,
    ) -> Product:
        return Product.objects.create(
            id=product_id,
            title=title or f"Book {product_id}",
            author=author,
            category=category,
            price=price,
            available_quantity=available,
            reserved_quantity=reserved,
        )

    return _make


@pytest.fixture()
def catalog_service():
    return CatalogService(repository=ProductDjangoRepository())


@pytest.fixture()
def order_service(catalog_service):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        catalog_service=catalog_service,
    )


# ---------------------------------------------------------------------------
# Observability
# ---------------------------------------------------------------------------


class RecordingObservability:
    """In-memory ``IObservability`` capturing every emitted event."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict]] = []

    def info(self, event: str, **kwargs) -> None:
        self.records.append(("info", event, kwargs))

    def warning(self, event: str, **kwargs) -> None:
        self.records.append(("warning", event, kwargs))

    def error(self, event: str, **kwargs) -> None:
        self.records.append(("error", event, kwargs))

    def events(self, level: str | None = None) -> list[str]:
        return [event for lvl, event, _ in self.records if level in (None, lvl)]


@pytest.fixture()
def observability():
    return RecordingObservability()
