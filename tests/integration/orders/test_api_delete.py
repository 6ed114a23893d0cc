"""Integration tests for Order deletion endpoint."""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def book(make_product):
    return make_product("B1", available=5)


@pytest.fixture()
def order(order_service, book):
    return order_service.create_order(
        CreateOrderDTO(
            customer_id="CUST-001",
            items=[CreateOrderItemDTO(product_id="B1", quantity=2)],
        )
    )


class TestDeleteOrder:
    def test_delete_pending_returns_204_and_releases(self, api_client, order, book):
        response = api_client.delete(f"{URL}{order.id}/")

        assert response.status_code == 204
        book.refresh_from_db()
        assert book.reserved_quantity == 0
        assert api_client.get(f"{URL}{order.id}/").status_code == 404

    def test_delete_cancelled_returns_204(self, api_client, order, order_service):
        order_service.cancel_order(order.id)

        response = api_client.delete(f"{URL}{order.id}/")

        assert response.status_code == 204

    def test_delete_keeps_row_as_soft_deleted(self, api_client, order):
        api_client.delete(f"{URL}{order.id}/")

        assert Order.objects.dead().filter(id=order.id).exists()

    def test_delete_shipped_returns_409(self, api_client, order, order_service, book):
        order_service.update_status(order.id, OrderStatus.CONFIRMED)
        order_service.update_status(order.id, OrderStatus.SHIPPED)

        response = api_client.delete(f"{URL}{order.id}/")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "INVALID_STATE"
        assert api_client.get(f"{URL}{order.id}/").json()["status"] == "SHIPPED"
        book.refresh_from_db()
        assert (book.available_quantity, book.reserved_quantity) == (3, 0)

    def test_delete_confirmed_returns_409(self, api_client, order, order_service):
        order_service.update_status(order.id, OrderStatus.CONFIRMED)

        response = api_client.delete(f"{URL}{order.id}/")

        assert response.status_code == 409

    def test_delete_unknown_returns_404(self, api_client):
        response = api_client.delete(f"{URL}ORD-MISSING0/")

        assert response.status_code == 404

    def test_delete_twice_returns_404(self, api_client, order):
        api_client.delete(f"{URL}{order.id}/")

        response = api_client.delete(f"{URL}{order.id}/")

        assert response.status_code == 404
