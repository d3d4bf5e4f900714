from __future__ import annotations

import json
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


def emit_turn_event(
    request_id: str,
    event: str,
    *,
    logger: logging.Logger | None = None,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    active_logger = logger or LOGGER
    payload = {
        "request_id": request_id,
        "event": event,
        **{key: _jsonable(value) for key, value in fields.items()},
    }
    active_logger.log(level, "turn_event %s", json.dumps(payload, sort_keys=True))


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return str(value)
