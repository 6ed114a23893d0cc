"""Unit tests for CatalogService.

Covers:
- find_by_id / search (lazy, restartable, empty is not an error).
- Price quotes and the CALCULATION_ERROR path.
- Inventory capability surface (check / update with RESERVE, RELEASE, DEDUCT).
- Database failures translated to DATABASE_ERROR.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.db import DatabaseError, connection
from django.test.utils import CaptureQueriesContext

from modules.catalog.constants import InventoryOperation
from modules.catalog.dtos import SearchCriteria
from modules.catalog.exceptions import (
    CatalogUnavailable,
    InsufficientStock,
    PriceUnavailable,
    ProductNotFound,
)
from modules.catalog.services import CatalogService
from modules.core.exceptions import InvalidInput

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def books(make_product):
    return [
        make_product("B1", title="Dune", author="Frank Herbert", category="Science Fiction",
                     price=Decimal("12.99"), available=5),
        make_product("B2", title="Foundation", author="Isaac Asimov", category="Science Fiction",
                     price=Decimal("9.99"), available=0),
        make_product("B3", title="Moby-Dick", author="Herman Melville", category="Classics",
                     price=Decimal("8.75"), available=3, reserved=3),
        make_product("B4", title="Unpriced Draft", price=None, available=2),
    ]


# ---------------------------------------------------------------------------
# Look-ups
# ---------------------------------------------------------------------------


class TestFindById:
    def test_returns_product_dto(self, catalog_service, books):
        product = catalog_service.find_by_id("B1")

        assert product.product_id == "B1"
        assert product.title == "Dune"
        assert product.author == "Frank Herbert"
        assert product.price == Decimal("12.99")

    def test_alias_get_product_by_id(self, catalog_service, books):
        assert catalog_service.get_product_by_id("B2").title == "Foundation"

    def test_unknown_product_raises(self, catalog_service):
        with pytest.raises(ProductNotFound):
            catalog_service.find_by_id("NOPE")

    def test_empty_id_raises_invalid_input(self, catalog_service):
        with pytest.raises(InvalidInput):
            catalog_service.find_by_id("  ")

    def test_database_error_raises_catalog_unavailable(self, observability):
        repo = MagicMock()
        repo.get_by_id.side_effect = DatabaseError("connection lost")
        service = CatalogService(repository=repo, observability=observability)

        with pytest.raises(CatalogUnavailable) as exc:
            service.find_by_id("B1")

        assert exc.value.code == "DATABASE_ERROR"
        assert "catalog.database_error" in observability.events("error")


class TestSearch:
    def test_empty_criteria_matches_everything(self, catalog_service, books):
        result = catalog_service.search(SearchCriteria())

        assert [p.product_id for p in result] == ["B1", "B2", "B3", "B4"]

    def test_filters_by_title_case_insensitive(self, catalog_service, books):
        result = catalog_service.search(SearchCriteria(title="dUnE"))

        assert [p.product_id for p in result] == ["B1"]

    def test_filters_by_author_and_category(self, catalog_service, books):
        by_author = catalog_service.search(SearchCriteria(author="asimov"))
        by_category = catalog_service.search(SearchCriteria(category="science fiction"))

        assert [p.product_id for p in by_author] == ["B2"]
        assert [p.product_id for p in by_category] == ["B1", "B2"]

    def test_filters_by_price_range(self, catalog_service, books):
        result = catalog_service.search(
            SearchCriteria(min_price=Decimal("9.00"), max_price=Decimal("13.00"))
        )

        assert [p.product_id for p in result] == ["B1", "B2"]

    def test_filters_by_stock(self, catalog_service, books):
        in_stock = catalog_service.search(SearchCriteria(in_stock=True))
        out_of_stock = catalog_service.search(SearchCriteria(in_stock=False))

        assert [p.product_id for p in in_stock] == ["B1", "B4"]
        assert [p.product_id for p in out_of_stock] == ["B2", "B3"]

    def test_no_match_is_empty_not_error(self, catalog_service, books):
        result = catalog_service.search(SearchCriteria(title="nothing like this"))

        assert list(result) == []
        assert result.count() == 0

    def test_search_is_lazy(self, catalog_service, books):
        with CaptureQueriesContext(connection) as ctx:
            result = catalog_service.search(SearchCriteria(title="dune"))
        assert len(ctx.captured_queries) == 0

        assert len(list(result)) == 1

    def test_search_is_restartable(self, catalog_service, books, make_product):
        result = catalog_service.search(SearchCriteria(category="classics"))
        first = [p.product_id for p in result]

        make_product("B5", title="Pride and Prejudice", category="Classics")
        second = [p.product_id for p in result]

        assert first == ["B3"]
        assert second == ["B3", "B5"]

    def test_null_criteria_raises(self, catalog_service):
        with pytest.raises(InvalidInput):
            catalog_service.search(None)

    def test_alias_search_products(self, catalog_service, books):
        assert len(list(catalog_service.search_products(SearchCriteria()))) == 4


# ---------------------------------------------------------------------------
# Price quotes
# ---------------------------------------------------------------------------


class TestGetProductPrice:
    def test_quote_multiplies_unit_price(self, catalog_service, books):
        quote = catalog_service.get_product_price("B1", 3)

        assert quote.unit_price == Decimal("12.99")
        assert quote.quantity == 3
        assert quote.total == Decimal("38.97")

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_raises(self, catalog_service, books, quantity):
        with pytest.raises(InvalidInput):
            catalog_service.get_product_price("B1", quantity)

    def test_missing_price_raises_calculation_error(self, catalog_service, books):
        with pytest.raises(PriceUnavailable) as exc:
            catalog_service.get_product_price("B4", 1)

        assert exc.value.code == "CALCULATION_ERROR"

    def test_unknown_product_raises(self, catalog_service):
        with pytest.raises(ProductNotFound):
            catalog_service.get_product_price("NOPE", 1)


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


class TestInventory:
    def test_check_inventory(self, catalog_service, books):
        status = catalog_service.check_inventory("B3")

        assert status.available_quantity == 3
        assert status.reserved_quantity == 3
        assert status.in_stock is False

    @pytest.mark.parametrize(
        "operation, quantity, expected",
        [
            (InventoryOperation.RESERVE, 1, (5, 3)),
            ("RELEASE", 1, (5, 1)),
            ("DEDUCT", 2, (3, 0)),
        ],
    )
    def test_update_inventory_dispatches_to_ledger(
        self, catalog_service, make_product, operation, quantity, expected
    ):
        product = make_product("B9", available=5, reserved=2)

        assert catalog_service.update_inventory("B9", quantity, operation) is True

        product.refresh_from_db()
        assert (product.available_quantity, product.reserved_quantity) == expected

    @pytest.mark.parametrize("operation", ["reserve", "REFUND", ""])
    def test_unknown_operation_raises(self, catalog_service, books, operation):
        with pytest.raises(InvalidInput):
            catalog_service.update_inventory("B1", 1, operation)

    def test_insufficient_stock_propagates(self, catalog_service, books):
        with pytest.raises(InsufficientStock):
            catalog_service.update_inventory("B2", 1, InventoryOperation.RESERVE)

    def test_ledger_is_shared_with_service(self, catalog_service, books):
        catalog_service.ledger.reserve("B1", 2)

        assert catalog_service.check_inventory("B1").reserved_quantity == 2
