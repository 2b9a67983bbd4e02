"""
Centralized configuration with environment variable overrides.

All provider endpoints, cache lifetimes, and credentials are read here
once at startup. Missing required values are fatal: the service refuses
to start rather than failing later inside a conversation.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from shopfinder.logging_context import ConversationIdFilter

load_dotenv()

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a required setting is missing or malformed."""


def _require(env_var: str) -> str:
    """Read a required env var, failing loudly when it is absent or blank."""
    raw = os.getenv(env_var, "").strip()
    if not raw:
        raise ConfigError(f"{env_var} env var is required")
    return raw


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ConfigError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ConfigError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SheetsConfig:
    """Tabular store location and service-account credentials."""

    sheet_id: str = field(default_factory=lambda: _require("GOOGLE_SHEET_ID"))
    tab: str = field(default_factory=lambda: os.getenv("GOOGLE_SHEET_TAB", "Shops"))
    service_account_b64: str = field(
        default_factory=lambda: _require("GOOGLE_SERVICE_ACCOUNT_B64")
    )
    api_base: str = field(
        default_factory=lambda: os.getenv(
            "SHEETS_API_BASE", "https://sheets.googleapis.com/v4/spreadsheets"
        )
    )


@dataclass(frozen=True)
class GeocodingConfig:
    """Geocoding provider settings."""

    user_agent: str = field(default_factory=lambda: _require("NOMINATIM_USER_AGENT"))
    url: str = field(
        default_factory=lambda: os.getenv(
            "NOMINATIM_URL", "https://nominatim.openstreetmap.org/search"
        )
    )
    min_interval_sec: float = field(
        default_factory=lambda: _safe_float("GEOCODE_MIN_INTERVAL_SECONDS", "1.1")
    )


@dataclass(frozen=True)
class CacheConfig:
    """Lifetimes for persisted conversation state and provider caches."""

    geocode_days: int = field(default_factory=lambda: _safe_int("CACHE_TTL_GEOCODE_DAYS", "30"))
    sheet_seconds: int = field(
        default_factory=lambda: _safe_int("CACHE_TTL_SHEET_SECONDS", "600")
    )
    flow_state_hours: int = field(default_factory=lambda: _safe_int("FLOW_STATE_TTL_HOURS", "24"))
    search_results_minutes: int = field(
        default_factory=lambda: _safe_int("SEARCH_RESULTS_TTL_MINUTES", "15")
    )

    @property
    def geocode_ttl(self) -> float:
        return self.geocode_days * 24 * 60 * 60

    @property
    def flow_state_ttl(self) -> float:
        return self.flow_state_hours * 60 * 60

    @property
    def search_results_ttl(self) -> float:
        return self.search_results_minutes * 60


@dataclass(frozen=True)
class WebhookConfig:
    """HTTP front door and messaging transport settings."""

    path: str = field(default_factory=lambda: _require("WEBHOOK_PATH"))
    secret_token: str = field(default_factory=lambda: os.getenv("TELEGRAM_SECRET_TOKEN", ""))
    bot_token: str = field(default_factory=lambda: os.getenv("TELEGRAM_BOT_TOKEN", ""))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _safe_int("PORT", "8000"))


@dataclass(frozen=True)
class SearchConfig:
    """Proximity search settings."""

    radius_miles: float = field(default_factory=lambda: _safe_float("SEARCH_RADIUS_MILES", "100"))
    page_size: int = 10


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    sheets: SheetsConfig = field(default_factory=SheetsConfig)
    geocoding: GeocodingConfig = field(default_factory=GeocodingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    http_timeout_sec: float = field(
        default_factory=lambda: _safe_float("HTTP_TIMEOUT_SECONDS", "10")
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not config.webhook.path.startswith("/"):
        raise ConfigError(f"WEBHOOK_PATH must start with '/', got {config.webhook.path!r}")
    if config.cache.geocode_days < 1:
        raise ConfigError(
            f"CACHE_TTL_GEOCODE_DAYS must be >= 1, got {config.cache.geocode_days}"
        )
    if config.cache.sheet_seconds < 60:
        raise ConfigError(
            f"CACHE_TTL_SHEET_SECONDS must be >= 60, got {config.cache.sheet_seconds}"
        )
    if config.cache.flow_state_hours < 1:
        raise ConfigError(
            f"FLOW_STATE_TTL_HOURS must be >= 1, got {config.cache.flow_state_hours}"
        )
    if config.cache.search_results_minutes < 1:
        raise ConfigError(
            "SEARCH_RESULTS_TTL_MINUTES must be >= 1, "
            f"got {config.cache.search_results_minutes}"
        )

    for name, value in [
        ("GEOCODE_MIN_INTERVAL_SECONDS", config.geocoding.min_interval_sec),
        ("HTTP_TIMEOUT_SECONDS", config.http_timeout_sec),
        ("SEARCH_RADIUS_MILES", config.search.radius_miles),
    ]:
        if value <= 0:
            raise ConfigError(f"{name} must be > 0, got {value}")


def configure_logging(level: str) -> None:
    """Install the root handler with the conversation id in every line."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(conversation_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, ConversationIdFilter) for f in handler.filters):
            handler.addFilter(ConversationIdFilter())


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    configure_logging(config.log_level)
    logger.info("Configuration loaded for sheet tab '%s'", config.sheets.tab)
    return config
