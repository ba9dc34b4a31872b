from collections.abc import Generator
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from faker import Faker
from fastapi.testclient import TestClient

from src.app.core.config import Settings
from src.app.main import create_application
from src.app.services.relay import SessionState
from src.app.services.relay.metrics import reset_metrics
from src.app.services.relay.tiers import OutboundResult, TierLevel

fake = Faker()


# ============== Settings ==============
@pytest.fixture
def relay_settings() -> Settings:
    """Real settings with no env file, no default token and no settle delay."""
    return Settings(
        _env_file=None,
        RELAY_DEFAULT_TOKEN=None,
        RELAY_SHARED_SECRET=None,
        RELAY_BROWSER_WS_ENDPOINT=None,
        RELAY_TIMEOUT_SECONDS=5.0,
        RELAY_SETTLE_DELAY_SECONDS=0.0,
    )


@pytest.fixture(autouse=True)
def reset_relay_metrics() -> Generator[None, None, None]:
    reset_metrics()
    yield
    reset_metrics()


# ============== Fake Playwright ==============
def make_page() -> MagicMock:
    page = MagicMock()
    page.goto = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.evaluate = AsyncMock()
    page.close = AsyncMock()
    return page


def make_api_response(status: int, text: str) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)
    return response


def make_context(page: MagicMock | None = None) -> MagicMock:
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page or make_page())
    context.close = AsyncMock()
    context.request.fetch = AsyncMock(return_value=make_api_response(200, "{}"))
    return context


@pytest.fixture
def fake_playwright() -> SimpleNamespace:
    """Fake async_playwright() factory.

    Every browser.new_context() call yields a fresh context, recorded in
    `contexts`, all sharing `page`.
    """
    page = make_page()
    contexts: list[MagicMock] = []

    def _new_context(**kwargs):
        context = make_context(page)
        contexts.append(context)
        return context

    browser = MagicMock()
    browser.new_context = AsyncMock(side_effect=_new_context)
    browser.close = AsyncMock()

    driver = MagicMock()
    driver.chromium.launch = AsyncMock(return_value=browser)
    driver.chromium.connect_over_cdp = AsyncMock(return_value=browser)
    driver.stop = AsyncMock()

    manager = MagicMock()
    manager.start = AsyncMock(return_value=driver)
    factory = MagicMock(return_value=manager)

    return SimpleNamespace(
        factory=factory,
        driver=driver,
        browser=browser,
        contexts=contexts,
        page=page,
    )


# ============== Orchestrator / API ==============
def json_result(status: int, body, tier: TierLevel = TierLevel.TIER_1_DIRECT) -> OutboundResult:
    return OutboundResult(status=status, json_body=body, is_json=True, tier_used=tier)


def text_result(status: int, text: str, tier: TierLevel = TierLevel.TIER_1_DIRECT) -> OutboundResult:
    return OutboundResult(status=status, text=text, is_json=False, tier_used=tier)


@pytest.fixture
def mock_orchestrator() -> MagicMock:
    """Orchestrator double; execute() returns a 200 JSON result by default."""
    orchestrator = MagicMock()
    orchestrator.execute = AsyncMock(return_value=json_result(200, {"code": 200, "message": "OK"}))
    orchestrator.cleanup = AsyncMock()
    orchestrator.get_metrics = MagicMock(return_value={"direct_attempts": 0})
    orchestrator.session.ensure_ready = AsyncMock()
    orchestrator.session.state = SessionState.READY
    orchestrator.session.generation = 1
    return orchestrator


@pytest.fixture
def client(relay_settings: Settings, mock_orchestrator: MagicMock) -> Generator[TestClient, None, None]:
    app = create_application(relay_settings, orchestrator=mock_orchestrator)
    with TestClient(app) as _client:
        yield _client


@pytest.fixture
def token() -> str:
    return fake.sha256()
