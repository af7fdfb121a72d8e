import logging
import uuid

import pytest

ORDERS_URL = "/api/v1/manufacturer/orders/"


class TestRequestContextMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get(ORDERS_URL, HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get(ORDERS_URL)
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_correlation_id_in_logs(self, api_client_with_correlation, caplog):
        api_client, cid = api_client_with_correlation
        with caplog.at_level(logging.INFO):
            api_client.get(ORDERS_URL)
        found = any(cid in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{cid}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )

    def test_request_finished_reports_duration(self, client, caplog):
        with caplog.at_level(logging.INFO):
            client.get(ORDERS_URL)
        finished = [
            r.getMessage() for r in caplog.records if "request_finished" in r.getMessage()
        ]
        assert finished
        assert "duration_ms" in finished[0]
        assert "401" in finished[0]


class TestSensitiveDataMasking:
    @pytest.mark.parametrize(
        ("value", "secret"),
        [
            ("contact buyer at purchasing@initech.example", "purchasing@initech.example"),
            ("password='s3cret123'", "s3cret123"),
            ("token=abc123xyz", "abc123xyz"),
            ("Authorization: eyJhbGciOiJIUzI1NiJ9", "eyJhbGciOiJIUzI1NiJ9"),
        ],
    )
    def test_sensitive_value_masked(self, value, secret):
        from config.settings import mask_sensitive_data

        result = mask_sensitive_data(None, None, {"event": "test", "data": value})
        assert secret not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_non_sensitive_data_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.status_updated", "order_number": "ORD-001", "version": 4}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_number"] == "ORD-001"
        assert result["event"] == "order.status_updated"
        assert result["version"] == 4
