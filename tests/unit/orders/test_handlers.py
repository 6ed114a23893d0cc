"""Unit tests for order domain events and their handlers."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderDeleted,
    OrderStatusChanged,
)
from modules.orders.exceptions import InvalidTransition
from modules.orders.handlers import (
    OrderCancelledHandler,
    OrderCreatedHandler,
    OrderDeletedHandler,
    OrderStatusChangedHandler,
)
from shared.infrastructure.bus import event_bus

pytestmark = pytest.mark.unit


class TestHandlers:
    def test_created_handler_logs(self):
        with patch("modules.orders.handlers.logger") as mock_logger:
            OrderCreatedHandler().handle(
                OrderCreated(aggregate_id="ORD-AAAA1111", customer_id="C1", total_amount="9.99")
            )

        mock_logger.info.assert_called_once_with(
            "order.event.created",
            order_id="ORD-AAAA1111",
            customer_id="C1",
            total_amount="9.99",
        )

    def test_cancelled_handler_logs(self):
        with patch("modules.orders.handlers.logger") as mock_logger:
            OrderCancelledHandler().handle(
                OrderCancelled(aggregate_id="ORD-AAAA1111", previous_status="CONFIRMED")
            )

        mock_logger.info.assert_called_once_with(
            "order.event.cancelled",
            order_id="ORD-AAAA1111",
            previous_status="CONFIRMED",
        )

    def test_status_changed_handler_logs(self):
        with patch("modules.orders.handlers.logger") as mock_logger:
            OrderStatusChangedHandler().handle(
                OrderStatusChanged(
                    aggregate_id="ORD-AAAA1111", old_status="PENDING", new_status="CONFIRMED"
                )
            )

        mock_logger.info.assert_called_once_with(
            "order.event.status_changed",
            order_id="ORD-AAAA1111",
            old_status="PENDING",
            new_status="CONFIRMED",
        )

    def test_deleted_handler_logs(self):
        with patch("modules.orders.handlers.logger") as mock_logger:
            OrderDeletedHandler().handle(OrderDeleted(aggregate_id="ORD-AAAA1111"))

        mock_logger.info.assert_called_once_with("order.event.deleted", order_id="ORD-AAAA1111")


class TestServiceEvents:
    """Events raised by OrderService reach the process-wide bus on commit."""

    @pytest.fixture()
    def published(self):
        with patch.object(event_bus, "publish") as publish:
            yield publish

    @staticmethod
    def _names(published):
        return [call.args[0].event_name for call in published.call_args_list]

    def test_create_publishes_order_created(
        self, order_service, make_product, published, django_capture_on_commit_callbacks
    ):
        make_product("B1", price=Decimal("10.00"))

        with django_capture_on_commit_callbacks(execute=True):
            order = order_service.create_order(
                CreateOrderDTO(
                    customer_id="CUST-1",
                    items=[CreateOrderItemDTO(product_id="B1", quantity=2)],
                )
            )

        assert self._names(published) == ["OrderCreated"]
        event = published.call_args.args[0]
        assert event.aggregate_id == order.id
        assert event.total_amount == "20.00"

    def test_cancel_publishes_status_changed_and_cancelled(
        self, order_service, make_product, published, django_capture_on_commit_callbacks
    ):
        make_product("B1")
        order = order_service.create_order(
            CreateOrderDTO(customer_id="CUST-1", items=[CreateOrderItemDTO(product_id="B1", quantity=1)])
        )
        published.reset_mock()

        with django_capture_on_commit_callbacks(execute=True):
            order_service.cancel_order(order.id)

        assert self._names(published) == ["OrderStatusChanged", "OrderCancelled"]

    def test_delete_publishes_order_deleted(
        self, order_service, make_product, published, django_capture_on_commit_callbacks
    ):
        make_product("B1")
        order = order_service.create_order(
            CreateOrderDTO(customer_id="CUST-1", items=[CreateOrderItemDTO(product_id="B1", quantity=1)])
        )
        published.reset_mock()

        with django_capture_on_commit_callbacks(execute=True):
            order_service.delete_order(order.id)

        assert self._names(published) == ["OrderDeleted"]

    def test_failed_transition_publishes_nothing(
        self, order_service, make_product, published, django_capture_on_commit_callbacks
    ):
        make_product("B1")
        order = order_service.create_order(
            CreateOrderDTO(customer_id="CUST-1", items=[CreateOrderItemDTO(product_id="B1", quantity=1)])
        )
        published.reset_mock()

        with django_capture_on_commit_callbacks(execute=True):
            with pytest.raises(InvalidTransition):
                order_service.update_status(order.id, OrderStatus.DELIVERED)

        published.assert_not_called()


class TestDomainEventDefaults:
    def test_event_name_and_identity(self):
        first = OrderDeleted(aggregate_id="ORD-AAAA1111")
        second = OrderDeleted(aggregate_id="ORD-AAAA1111")

        assert first.event_name == "OrderDeleted"
        assert first.event_id != second.event_id
        assert first.occurred_on.tzinfo is not None
