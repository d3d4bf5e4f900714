from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


TERMINAL_FAILURE_STATUSES = frozenset(
    {
        RunStatus.FAILED.value,
        RunStatus.CANCELLED.value,
        RunStatus.EXPIRED.value,
    }
)


@dataclass(frozen=True)
class RunJob:
    """Snapshot of one run as last reported by the remote service.

    ``status`` keeps the raw string so statuses outside ``RunStatus`` survive
    the round-trip into diagnostics.
    """

    run_id: str
    status: str
    last_error: dict[str, Any] | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == RunStatus.COMPLETED.value

    @property
    def is_terminal_failure(self) -> bool:
        return self.status in TERMINAL_FAILURE_STATUSES


def run_from_payload(payload: dict[str, Any], run_id: str | None = None) -> RunJob | None:
    resolved_id = payload.get("id", run_id)
    status = payload.get("status")
    if not isinstance(resolved_id, str) or not resolved_id:
        return None
    if not isinstance(status, str) or not status:
        return None
    last_error = payload.get("last_error")
    return RunJob(
        run_id=resolved_id,
        status=status,
        last_error=last_error if isinstance(last_error, dict) else None,
    )
