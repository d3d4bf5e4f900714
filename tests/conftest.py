from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

import pytest

from coachrelay.app.assistants.client import RemoteTransportError
from coachrelay.app.assistants.contracts import RunJob
from coachrelay.core.config import RelayConfig


def _base_config() -> RelayConfig:
    return RelayConfig(
        app_name="Coach Relay",
        app_version="0.1.0",
        api_key="sk-test-secret",
        assistant_id="asst_test",
        base_url="https://api.example.test/v1",
        beta_header="assistants=v2",
        max_message_chars=4000,
        max_body_bytes=50 * 1024,
        poll_interval_seconds=0.8,
        poll_max_attempts=30,
        message_page_limit=10,
        http_timeout_seconds=20.0,
        cors_allow_origins=("*",),
    )


class ScriptedConversationService:
    """In-memory stand-in for the remote threads/runs API.

    ``run_statuses`` is consumed one entry per ``get_run`` call; the last
    entry repeats once the script runs out.
    """

    def __init__(
        self,
        *,
        initial_status: str = "queued",
        run_statuses: list[str] | None = None,
        last_error: dict[str, Any] | None = None,
        messages: list[dict[str, Any]] | None = None,
        fail_on: dict[str, RemoteTransportError] | None = None,
    ) -> None:
        self.initial_status = initial_status
        self.run_statuses = list(run_statuses or ["completed"])
        self.last_error = last_error
        self.messages = (
            messages
            if messages is not None
            else [
                {
                    "role": "assistant",
                    "content": [{"type": "text", "text": {"value": "Keep going!"}}],
                }
            ]
        )
        self.fail_on = fail_on or {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._thread_counter = 0

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail_on:
            raise self.fail_on[name]

    def count(self, name: str) -> int:
        return sum(1 for call_name, _ in self.calls if call_name == name)

    async def create_thread(self) -> str:
        self._record("create_thread")
        self._thread_counter += 1
        return f"thread_{self._thread_counter}"

    async def add_user_message(self, thread_id: str, content: str) -> None:
        self._record("add_user_message", thread_id, content)

    async def create_run(self, thread_id: str, assistant_id: str) -> RunJob:
        self._record("create_run", thread_id, assistant_id)
        return RunJob(run_id="run_1", status=self.initial_status)

    async def get_run(self, thread_id: str, run_id: str) -> RunJob:
        self._record("get_run", thread_id, run_id)
        status = (
            self.run_statuses.pop(0)
            if len(self.run_statuses) > 1
            else self.run_statuses[0]
        )
        last_error = (
            self.last_error if status in {"failed", "cancelled", "expired"} else None
        )
        return RunJob(run_id=run_id, status=status, last_error=last_error)

    async def list_messages(self, thread_id: str, limit: int) -> list[dict[str, Any]]:
        self._record("list_messages", thread_id, limit)
        return self.messages


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def make_config() -> Callable[..., RelayConfig]:
    def _make(**overrides: object) -> RelayConfig:
        return replace(_base_config(), **overrides)

    return _make


@pytest.fixture
def make_service() -> type[ScriptedConversationService]:
    return ScriptedConversationService


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
