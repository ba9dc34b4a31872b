import os
from enum import Enum

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    APP_NAME: str = "Clearance Relay"
    APP_DESCRIPTION: str | None = "Relays GHN internal API calls through a cleared browser session"
    APP_VERSION: str | None = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8787
    LOG_LEVEL: str = "INFO"


class EnvironmentOption(str, Enum):
    LOCAL = "local"
    STAGING = "staging"
    PRODUCTION = "production"


class EnvironmentSettings(BaseSettings):
    ENVIRONMENT: EnvironmentOption = EnvironmentOption.LOCAL


class CORSSettings(BaseSettings):
    CORS_ORIGINS: list[str] = ["*"]
    CORS_METHODS: list[str] = ["*"]
    CORS_HEADERS: list[str] = ["*"]


class RelaySettings(BaseSettings):
    """Configuration for the clearance relay engine.

    Session lifecycle:
    - The browser session is created lazily on the first relayed call
    - Bootstrap visits RELAY_WARMUP_URLS once to collect clearance cookies
    - A challenge on a direct call refreshes the context and retries in-page

    Legacy environment names (GHN_TOKEN, SHARED_SECRET, BROWSERLESS_WS) are
    still accepted so existing deployments keep working.
    """

    # ============================================
    # Credentials
    # ============================================
    # Token used when a request body carries none
    RELAY_DEFAULT_TOKEN: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_DEFAULT_TOKEN", "GHN_TOKEN"),
    )

    # When set, callers must send a matching `x-secret` header
    RELAY_SHARED_SECRET: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_SHARED_SECRET", "SHARED_SECRET"),
    )

    # ============================================
    # Browser Engine
    # ============================================
    # Remote CDP endpoint (e.g. browserless). None = launch local Chromium
    RELAY_BROWSER_WS_ENDPOINT: str | None = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_BROWSER_WS_ENDPOINT", "BROWSERLESS_WS"),
    )
    RELAY_HEADLESS: bool = True

    RELAY_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
    )

    # ============================================
    # Timing (seconds)
    # ============================================
    RELAY_TIMEOUT_SECONDS: float = 45.0  # navigation, request and evaluation
    RELAY_SETTLE_DELAY_SECONDS: float = 4.0  # wait after each warm-up navigation

    # ============================================
    # Upstream
    # ============================================
    RELAY_UPSTREAM_BASE_URL: str = "https://fe-online-gateway.ghn.vn/order-tracking/public-api/internal"
    RELAY_WARMUP_URLS: list[str] = [
        "https://tracuunoibo.ghn.vn/",
        "https://fe-online-gateway.ghn.vn/",
    ]
    RELAY_FALLBACK_WARMUP_URL: str = "https://tracuunoibo.ghn.vn/"
    RELAY_REFERER: str = "https://tracuunoibo.ghn.vn/"
    RELAY_ORIGIN: str = "https://tracuunoibo.ghn.vn"

    # Header carrying the caller's token on upstream calls
    RELAY_TOKEN_HEADER: str = "token"

    # localStorage key the in-page fallback writes the token under
    RELAY_LOCAL_STORAGE_TOKEN_KEY: str = "token"

    # ============================================
    # Challenge Detection
    # ============================================
    RELAY_BLOCKED_STATUS_CODES: list[int] = [403]
    RELAY_CHALLENGE_MARKERS: list[str] = [
        "just a moment",
        "checking your browser",
        "cf_chl_opt",
        "attention required! | cloudflare",
    ]


class Settings(
    AppSettings,
    EnvironmentSettings,
    CORSSettings,
    RelaySettings,
):
    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(os.path.realpath(__file__)), "..", "..", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
