"""Unit tests for the Tier 1 direct executor."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.app.services.relay import OutboundRequest, RelayTimeoutException, Tier1DirectExecutor, TierLevel


def make_response(status: int, text: str) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)
    return response


@pytest.fixture
def mock_session() -> MagicMock:
    session = MagicMock()
    session.generation = 1
    session.ensure_ready = AsyncMock()
    session.context.request.fetch = AsyncMock(return_value=make_response(200, '{"code": 200}'))
    return session


@pytest.fixture
def executor(relay_settings, mock_session: MagicMock) -> Tier1DirectExecutor:
    return Tier1DirectExecutor(relay_settings, mock_session)


@pytest.fixture
def request_(token: str) -> OutboundRequest:
    return OutboundRequest(
        url="https://fe-online-gateway.ghn.vn/order-tracking/public-api/internal/check-warehouse-ownership",
        token=token,
        payload={"warehouse_id": 1552},
        operation="ownership-check",
    )


class TestDirectFetch:
    @pytest.mark.asyncio
    async def test_sends_headers_body_and_timeout(
        self, executor: Tier1DirectExecutor, mock_session: MagicMock, request_: OutboundRequest, token: str
    ) -> None:
        await executor.execute(request_)

        call = mock_session.context.request.fetch.await_args
        assert call.args[0] == request_.url
        assert call.kwargs["method"] == "POST"
        assert call.kwargs["headers"]["token"] == token
        assert call.kwargs["headers"]["content-type"] == "application/json"
        assert call.kwargs["headers"]["origin"] == "https://tracuunoibo.ghn.vn"
        assert json.loads(call.kwargs["data"]) == {"warehouse_id": 1552}
        assert call.kwargs["timeout"] == 5000.0
        assert call.kwargs["fail_on_status_code"] is False

    @pytest.mark.asyncio
    async def test_parses_json_body(self, executor: Tier1DirectExecutor, request_: OutboundRequest) -> None:
        result = await executor.execute(request_)

        assert result.status == 200
        assert result.is_json is True
        assert result.body == {"code": 200}
        assert result.tier_used == TierLevel.TIER_1_DIRECT

    @pytest.mark.asyncio
    async def test_non_json_body_kept_as_text(
        self, executor: Tier1DirectExecutor, mock_session: MagicMock, request_: OutboundRequest
    ) -> None:
        mock_session.context.request.fetch.return_value = make_response(403, "<html>Just a moment...</html>")

        result = await executor.execute(request_)

        assert result.status == 403
        assert result.is_json is False
        assert result.body == {"text": "<html>Just a moment...</html>"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 404, 500, 502])
    async def test_does_not_raise_on_error_status(
        self, executor: Tier1DirectExecutor, mock_session: MagicMock, request_: OutboundRequest, status: int
    ) -> None:
        mock_session.context.request.fetch.return_value = make_response(status, '{"message": "nope"}')

        result = await executor.execute(request_)

        assert result.status == status
        assert result.failed is False

    @pytest.mark.asyncio
    async def test_get_without_payload_sends_no_body(
        self, executor: Tier1DirectExecutor, mock_session: MagicMock, token: str
    ) -> None:
        request = OutboundRequest(url="https://example.com/x", token=token, method="GET")

        await executor.execute(request)

        call = mock_session.context.request.fetch.await_args
        assert call.kwargs["method"] == "GET"
        assert call.kwargs["data"] is None


class TestDirectFailures:
    @pytest.mark.asyncio
    async def test_timeout_is_mapped(
        self, executor: Tier1DirectExecutor, mock_session: MagicMock, request_: OutboundRequest
    ) -> None:
        mock_session.context.request.fetch.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")

        with pytest.raises(RelayTimeoutException) as exc_info:
            await executor.execute(request_)

        assert exc_info.value.tier == "direct"
        assert exc_info.value.timeout_seconds == 5.0

    @pytest.mark.asyncio
    async def test_transport_error_propagates(
        self, executor: Tier1DirectExecutor, mock_session: MagicMock, request_: OutboundRequest
    ) -> None:
        mock_session.context.request.fetch.side_effect = PlaywrightError("net::ERR_CONNECTION_RESET")

        with pytest.raises(PlaywrightError):
            await executor.execute(request_)

        mock_session.ensure_ready.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_once_when_context_replaced_mid_call(
        self, executor: Tier1DirectExecutor, mock_session: MagicMock, request_: OutboundRequest
    ) -> None:
        def _disposed(*args, **kwargs):
            mock_session.generation = 2
            raise PlaywrightError("Target page, context or browser has been closed")

        mock_session.context.request.fetch.side_effect = _side_effects(
            _disposed, make_response(200, '{"ok": true}')
        )

        result = await executor.execute(request_)

        assert result.status == 200
        assert result.body == {"ok": True}
        mock_session.ensure_ready.assert_awaited_once()
        assert mock_session.context.request.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_second_failure_after_retry_propagates(
        self, executor: Tier1DirectExecutor, mock_session: MagicMock, request_: OutboundRequest
    ) -> None:
        def _disposed(*args, **kwargs):
            mock_session.generation += 1
            raise PlaywrightError("Target closed")

        mock_session.context.request.fetch.side_effect = _disposed

        with pytest.raises(PlaywrightError):
            await executor.execute(request_)

        assert mock_session.context.request.fetch.await_count == 2


def _side_effects(*steps):
    """Side effect running callables and returning plain values in order."""
    iterator = iter(steps)

    def _next(*args, **kwargs):
        step = next(iterator)
        if callable(step) and not isinstance(step, MagicMock):
            return step(*args, **kwargs)
        return step

    return _next
