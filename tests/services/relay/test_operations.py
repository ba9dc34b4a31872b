"""Unit tests for the upstream operation catalog."""

import json

import pytest
from pydantic import SecretStr

from src.app.services.relay import MissingTokenException
from src.app.services.relay.operations import (
    ACTIVITY_LOG_ACTION,
    DEFAULT_ACTIVITY_DESCRIPTION,
    build_activity_log,
    build_forward,
    build_ownership_check,
    build_warehouse_update,
    resolve_token,
    resolve_warehouse_field,
)

BASE = "https://fe-online-gateway.ghn.vn/order-tracking/public-api/internal"


class TestResolveToken:
    def test_supplied_token_wins(self, relay_settings) -> None:
        relay_settings.RELAY_DEFAULT_TOKEN = SecretStr("default")
        assert resolve_token("mine", relay_settings) == "mine"

    def test_falls_back_to_default(self, relay_settings) -> None:
        relay_settings.RELAY_DEFAULT_TOKEN = SecretStr("default")
        assert resolve_token(None, relay_settings) == "default"
        assert resolve_token("", relay_settings) == "default"

    def test_missing_everywhere_raises(self, relay_settings) -> None:
        with pytest.raises(MissingTokenException) as exc_info:
            resolve_token(None, relay_settings)
        assert str(exc_info.value) == "missing token"

    def test_empty_default_counts_as_missing(self, relay_settings) -> None:
        relay_settings.RELAY_DEFAULT_TOKEN = SecretStr("")
        with pytest.raises(MissingTokenException):
            resolve_token(None, relay_settings)


class TestWarehouseField:
    @pytest.mark.parametrize(
        ("type_", "field"),
        [
            (1, "pickup_warehouse_id"),
            (2, "current_warehouse_id"),
            (3, "deliver_warehouse_id"),
            (4, "return_warehouse_id"),
            ("2", "current_warehouse_id"),
            (None, "deliver_warehouse_id"),
            (9, "deliver_warehouse_id"),
            ("abc", "deliver_warehouse_id"),
        ],
    )
    def test_mapping(self, type_, field: str) -> None:
        assert resolve_warehouse_field(type_) == field


class TestBuilders:
    def test_ownership_check(self, relay_settings, token: str) -> None:
        request = build_ownership_check(1552, token, relay_settings)

        assert request.url == f"{BASE}/check-warehouse-ownership"
        assert request.method == "POST"
        assert request.payload == {"warehouse_id": 1552}
        assert request.operation == "ownership-check"

    def test_warehouse_update_defaults(self, relay_settings, token: str) -> None:
        request = build_warehouse_update(["ABC123", "XYZ789"], 1552, token, relay_settings)

        assert request.url == f"{BASE}/update-orders-warehouse"
        assert request.payload == {
            "order_codes": ["ABC123", "XYZ789"],
            "warehouse_id": 1552,
            "reason": "",
            "type": 3,
        }

    def test_warehouse_update_custom(self, relay_settings, token: str) -> None:
        request = build_warehouse_update(["ABC123"], 7, token, relay_settings, type_=1, reason="wrong hub")

        assert request.payload["type"] == 1
        assert request.payload["reason"] == "wrong hub"

    def test_activity_log(self, relay_settings, token: str) -> None:
        request = build_activity_log("ABC123", 1552, token, relay_settings, type_=4)

        assert request.url == f"{BASE}/activity-logs/create"
        assert request.payload == {
            "order_code": "ABC123",
            "action": ACTIVITY_LOG_ACTION,
            "description": DEFAULT_ACTIVITY_DESCRIPTION,
            "info": {"old": {}, "new": {"return_warehouse_id": 1552}},
        }

    def test_activity_log_description_and_default_type(self, relay_settings, token: str) -> None:
        request = build_activity_log("ABC123", 1552, token, relay_settings, description="moved back")

        assert request.payload["description"] == "moved back"
        assert request.payload["info"]["new"] == {"deliver_warehouse_id": 1552}

    def test_base_url_trailing_slash(self, relay_settings, token: str) -> None:
        relay_settings.RELAY_UPSTREAM_BASE_URL = BASE + "/"
        assert build_ownership_check(1, token, relay_settings).url == f"{BASE}/check-warehouse-ownership"

    def test_forward(self, token: str) -> None:
        request = build_forward(
            "https://example.com/api",
            token,
            method="put",
            body={"a": 1},
            headers={"X-Trace": "1"},
        )

        assert request.method == "PUT"
        assert json.loads(request.body()) == {"a": 1}
        assert request.extra_headers == {"X-Trace": "1"}
        assert request.operation == "forward"

    def test_headers_carry_token(self, relay_settings, token: str) -> None:
        headers = build_ownership_check(1, token, relay_settings).headers(relay_settings)

        assert headers["token"] == token
        assert headers["referer"] == "https://tracuunoibo.ghn.vn/"
        assert headers["user-agent"] == relay_settings.RELAY_USER_AGENT

    def test_caller_headers_override_case_insensitively(self, relay_settings, token: str) -> None:
        request = build_forward("https://example.com", token, headers={"Content-Type": "text/plain"})
        headers = request.headers(relay_settings)

        assert headers["Content-Type"] == "text/plain"
        assert "content-type" not in headers

    @pytest.mark.parametrize("method", ["get", "HEAD"])
    def test_bodyless_methods_drop_payload(self, token: str, method: str) -> None:
        request = build_forward("https://example.com/api", token, method=method, body={"a": 1})

        assert request.payload == {"a": 1}
        assert request.body() is None
