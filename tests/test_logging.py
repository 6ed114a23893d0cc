import logging
import uuid

import pytest

from config.settings import mask_sensitive_data


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        found = any(custom_id in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{custom_id}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )

    def test_api_responses_carry_request_id(self, api_client_with_correlation):
        client, cid = api_client_with_correlation
        response = client.get("/api/v1/orders/")
        assert response["X-Request-ID"] == cid


class TestSensitiveDataMasking:
    @pytest.mark.parametrize(
        "card",
        ["4111111111111111", "4111 1111 1111 1111", "5500-0000-0000-0004"],
    )
    def test_card_number_masked(self, card):
        event_dict = {"event": "test", "payment": f"charged card {card} ok"}
        result = mask_sensitive_data(None, None, event_dict)
        assert card not in result["payment"]
        assert "***MASKED***" in result["payment"]
        assert result["payment"].startswith("charged card ")

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_cvv_masked(self):
        event_dict = {"event": "test", "data": "cvv: 123"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "123" not in result["data"]

    def test_non_sensitive_data_unchanged(self):
        event_dict = {
            "event": "order.created",
            "order_id": "ORD-7K2M9QXA",
            "total_amount": "20.00",
            "event_id": "0190a1b2-c3d4-7e5f-8a9b-0c1d2e3f4a5b",
        }
        result = mask_sensitive_data(None, None, dict(event_dict))
        assert result == event_dict

    def test_non_string_values_untouched(self):
        event_dict = {"event": "inventory.reserved", "quantity": 4111111111111111}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["quantity"] == 4111111111111111
