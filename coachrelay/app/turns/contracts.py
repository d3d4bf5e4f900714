from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TurnErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    CONFIGURATION = "configuration"
    REMOTE_TRANSPORT = "remote_transport"
    RUN_TERMINAL = "run_terminal"
    POLL_TIMEOUT = "poll_timeout"
    NO_REPLY = "no_reply"


@dataclass(frozen=True)
class TurnResult:
    reply: str
    thread_id: str


@dataclass(frozen=True)
class TurnFailure:
    kind: TurnErrorKind
    message: str
    thread_id: str | None = None
    run_status: str | None = None
    last_error: dict[str, Any] | None = None
    diagnostic: dict[str, Any] | None = None


class TurnError(Exception):
    def __init__(self, failure: TurnFailure) -> None:
        super().__init__(failure.message)
        self.failure = failure
