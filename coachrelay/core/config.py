from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_BETA_HEADER = "assistants=v2"


@dataclass(frozen=True)
class RelayConfig:
    app_name: str
    app_version: str
    api_key: str | None
    assistant_id: str | None
    base_url: str
    beta_header: str
    max_message_chars: int
    max_body_bytes: int
    poll_interval_seconds: float
    poll_max_attempts: int
    message_page_limit: int
    http_timeout_seconds: float
    cors_allow_origins: tuple[str, ...]


def _read_optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if not value:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _read_int_env(name: str, default: int) -> int:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float_env(name: str, default: float) -> float:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_origins_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = _read_optional_env(name)
    if value is None:
        return default
    origins = tuple(origin.strip() for origin in value.split(",") if origin.strip())
    return origins or default


def load_relay_config() -> RelayConfig:
    return RelayConfig(
        app_name=os.getenv("APP_NAME", "Coach Relay"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        api_key=_read_optional_env("OPENAI_API_KEY"),
        assistant_id=_read_optional_env("OPENAI_ASSISTANT_ID"),
        base_url=(_read_optional_env("OPENAI_BASE_URL") or DEFAULT_BASE_URL).rstrip(
            "/"
        ),
        beta_header=_read_optional_env("OPENAI_BETA_HEADER") or DEFAULT_BETA_HEADER,
        max_message_chars=_read_int_env("RELAY_MAX_MESSAGE_CHARS", default=4000),
        max_body_bytes=_read_int_env("RELAY_MAX_BODY_BYTES", default=50 * 1024),
        poll_interval_seconds=_read_float_env(
            "RELAY_POLL_INTERVAL_SECONDS", default=0.8
        ),
        poll_max_attempts=_read_int_env("RELAY_POLL_MAX_ATTEMPTS", default=30),
        message_page_limit=_read_int_env("RELAY_MESSAGE_PAGE_LIMIT", default=10),
        http_timeout_seconds=_read_float_env(
            "RELAY_HTTP_TIMEOUT_SECONDS", default=20.0
        ),
        cors_allow_origins=_read_origins_env("CORS_ALLOW_ORIGINS", default=("*",)),
    )


def missing_relay_settings(config: RelayConfig) -> list[str]:
    missing: list[str] = []
    if not config.api_key:
        missing.append("OPENAI_API_KEY")
    if not config.assistant_id:
        missing.append("OPENAI_ASSISTANT_ID")
    return missing
