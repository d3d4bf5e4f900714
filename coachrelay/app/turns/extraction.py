from __future__ import annotations

from typing import Any

ASSISTANT_ROLE = "assistant"
PARAGRAPH_SEPARATOR = "\n\n"


def _newest_first(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    timestamps = [message.get("created_at") for message in messages]
    if not messages or not all(
        isinstance(value, (int, float)) and not isinstance(value, bool)
        for value in timestamps
    ):
        return list(messages)
    return sorted(messages, key=lambda message: message["created_at"], reverse=True)


def _text_parts(content: Any) -> list[str]:
    if not isinstance(content, list):
        return []
    parts: list[str] = []
    for part in content:
        if not isinstance(part, dict) or part.get("type") != "text":
            continue
        text = part.get("text")
        value = text.get("value") if isinstance(text, dict) else None
        if isinstance(value, str) and value:
            parts.append(value)
    return parts


def extract_reply(messages: list[dict[str, Any]]) -> str | None:
    """Return the text of the most recent assistant message, or None.

    Messages carrying ``created_at`` are ordered newest first before scanning;
    otherwise the page is assumed to already be in descending order. Non-text
    content parts are skipped.
    """
    for message in _newest_first(messages):
        if message.get("role") != ASSISTANT_ROLE:
            continue
        parts = _text_parts(message.get("content"))
        return PARAGRAPH_SEPARATOR.join(parts) if parts else None
    return None
