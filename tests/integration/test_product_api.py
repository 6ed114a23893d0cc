"""Integration tests for the catalog endpoints."""

from __future__ import annotations

from decimal import Decimal

import pytest

pytestmark = pytest.mark.integration

URL = "/api/v1/products/"


@pytest.fixture()
def books(make_product):
    return [
        make_product("B1", title="Dune", author="Frank Herbert", category="Science Fiction",
                     price=Decimal("12.99"), available=5),
        make_product("B2", title="Emma", author="Jane Austen", category="Classics",
                     price=Decimal("7.50"), available=0),
        make_product("B12", title="Forthcoming Title", price=None, available=3),
    ]


class TestProductSearch:
    def test_list_all(self, api_client, books):
        response = api_client.get(URL)

        assert response.status_code == 200
        assert [p["product_id"] for p in response.json()] == ["B1", "B2", "B12"]

    def test_search_by_author(self, api_client, books):
        response = api_client.get(URL, {"author": "austen"})

        assert [p["product_id"] for p in response.json()] == ["B2"]

    def test_search_in_stock(self, api_client, books):
        response = api_client.get(URL, {"in_stock": "true"})

        assert [p["product_id"] for p in response.json()] == ["B1", "B12"]

    def test_search_by_price_range(self, api_client, books):
        response = api_client.get(URL, {"min_price": "5", "max_price": "10"})

        assert [p["product_id"] for p in response.json()] == ["B2"]

    def test_inverted_price_range_returns_400(self, api_client, books):
        response = api_client.get(URL, {"min_price": "10", "max_price": "5"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "min_price"

    def test_no_match_returns_empty_list(self, api_client, books):
        response = api_client.get(URL, {"title": "nothing like this"})

        assert response.status_code == 200
        assert response.json() == []


class TestProductRetrieve:
    def test_retrieve(self, api_client, books):
        response = api_client.get(f"{URL}B1/")

        assert response.status_code == 200
        assert response.json() == {
            "product_id": "B1",
            "title": "Dune",
            "author": "Frank Herbert",
            "category": "Science Fiction",
            "price": "12.99",
        }

    def test_unpriced_product_has_null_price(self, api_client, books):
        assert api_client.get(f"{URL}B12/").json()["price"] is None

    def test_unknown_returns_404(self, api_client):
        response = api_client.get(f"{URL}NOPE/")

        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "PRODUCT_NOT_FOUND"


class TestProductPrice:
    def test_quote(self, api_client, books):
        response = api_client.get(f"{URL}B1/price/", {"quantity": 3})

        assert response.status_code == 200
        assert response.json() == {
            "product_id": "B1",
            "unit_price": "12.99",
            "quantity": 3,
            "total": "38.97",
        }

    def test_quantity_defaults_to_one(self, api_client, books):
        assert api_client.get(f"{URL}B1/price/").json()["total"] == "12.99"

    def test_zero_quantity_returns_400(self, api_client, books):
        response = api_client.get(f"{URL}B1/price/", {"quantity": 0})

        assert response.status_code == 400

    def test_unpriced_product_returns_502(self, api_client, books):
        response = api_client.get(f"{URL}B12/price/")

        assert response.status_code == 502
        data = response.json()
        assert data["type"] == "server_error"
        assert data["errors"][0]["code"] == "CALCULATION_ERROR"


class TestProductInventory:
    def test_status(self, api_client, books):
        response = api_client.get(f"{URL}B1/inventory/")

        assert response.json() == {
            "product_id": "B1",
            "available_quantity": 5,
            "reserved_quantity": 0,
            "free_quantity": 5,
            "in_stock": True,
        }

    @pytest.mark.parametrize(
        "operations, expected",
        [
            ([("RESERVE", 2)], (5, 2)),
            ([("RESERVE", 2), ("RELEASE", 1)], (5, 1)),
            ([("RESERVE", 2), ("DEDUCT", 2)], (3, 0)),
        ],
    )
    def test_update(self, api_client, books, operations, expected):
        for operation, quantity in operations:
            response = api_client.post(
                f"{URL}B1/inventory/",
                {"operation": operation, "quantity": quantity},
                format="json",
            )
            assert response.status_code == 200

        data = response.json()
        assert (data["available_quantity"], data["reserved_quantity"]) == expected

    def test_reserve_beyond_free_returns_409(self, api_client, books):
        response = api_client.post(
            f"{URL}B2/inventory/", {"operation": "RESERVE", "quantity": 1}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "UPDATE_FAILED"

    def test_unknown_operation_returns_400(self, api_client, books):
        response = api_client.post(
            f"{URL}B1/inventory/", {"operation": "REFUND", "quantity": 1}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "operation"
