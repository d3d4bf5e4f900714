from __future__ import annotations

from typing import Any

from coachrelay.core.config import RelayConfig, missing_relay_settings


def build_readiness_report(config: RelayConfig) -> dict[str, Any]:
    missing = missing_relay_settings(config)
    configured = not missing
    return {
        "ready": configured,
        "remote_service": {
            "configured": configured,
            "base_url": config.base_url,
            "reason": (
                "configured_with_api_key_and_assistant"
                if configured
                else "missing_" + "_or_".join(missing)
            ),
        },
        "polling": {
            "interval_seconds": config.poll_interval_seconds,
            "max_attempts": config.poll_max_attempts,
        },
    }
