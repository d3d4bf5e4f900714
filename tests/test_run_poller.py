from __future__ import annotations

import pytest

from coachrelay.app.assistants.contracts import RunJob
from coachrelay.app.turns.polling import PollOutcome, RunPoller


class _StatusReader:
    def __init__(self, statuses: list[str]) -> None:
        self._statuses = list(statuses)
        self.reads = 0

    async def get_run(self, thread_id: str, run_id: str) -> RunJob:
        self.reads += 1
        status = self._statuses.pop(0) if len(self._statuses) > 1 else self._statuses[0]
        return RunJob(run_id=run_id, status=status)


@pytest.mark.asyncio
async def test_wait_treats_unknown_status_as_pending(recording_sleep) -> None:
    reader = _StatusReader(["requires_action", "completed"])
    poller = RunPoller(reader, interval_seconds=0.5, max_attempts=5, sleep=recording_sleep)

    result = await poller.wait("thread_1", RunJob(run_id="run_1", status="queued"))

    assert result.outcome == PollOutcome.COMPLETED
    assert result.attempts == 2
    assert recording_sleep.delays == [0.5, 0.5]


@pytest.mark.asyncio
async def test_wait_honours_attempt_budget(recording_sleep) -> None:
    reader = _StatusReader(["in_progress"])
    poller = RunPoller(reader, interval_seconds=0.8, max_attempts=3, sleep=recording_sleep)

    result = await poller.wait("thread_1", RunJob(run_id="run_1", status="queued"))

    assert result.outcome == PollOutcome.TIMEOUT
    assert result.run.status == "in_progress"
    assert reader.reads == 3


@pytest.mark.asyncio
async def test_wait_returns_terminal_failure_without_sleeping(recording_sleep) -> None:
    reader = _StatusReader(["completed"])
    poller = RunPoller(reader, interval_seconds=0.8, max_attempts=3, sleep=recording_sleep)

    result = await poller.wait("thread_1", RunJob(run_id="run_1", status="failed"))

    assert result.outcome == PollOutcome.TERMINAL_FAILURE
    assert result.attempts == 0
    assert reader.reads == 0
    assert recording_sleep.delays == []
