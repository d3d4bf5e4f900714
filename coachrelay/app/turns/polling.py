from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Protocol

from coachrelay.app.assistants.contracts import RunJob

SleepFn = Callable[[float], Awaitable[None]]


class RunReader(Protocol):
    async def get_run(self, thread_id: str, run_id: str) -> RunJob: ...


class PollOutcome(str, Enum):
    COMPLETED = "completed"
    TERMINAL_FAILURE = "terminal_failure"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    run: RunJob
    attempts: int


class RunPoller:
    """Waits for a run to settle with a fixed delay and a hard read budget.

    ``attempts`` counts status reads made after run creation; a run that is
    already settled when created costs zero reads.
    """

    def __init__(
        self,
        reader: RunReader,
        *,
        interval_seconds: float,
        max_attempts: int,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._reader = reader
        self._interval_seconds = interval_seconds
        self._max_attempts = max_attempts
        self._sleep = sleep

    async def wait(self, thread_id: str, run: RunJob) -> PollResult:
        current = run
        attempts = 0
        while True:
            if current.is_completed:
                return PollResult(PollOutcome.COMPLETED, current, attempts)
            if current.is_terminal_failure:
                return PollResult(PollOutcome.TERMINAL_FAILURE, current, attempts)
            if attempts >= self._max_attempts:
                return PollResult(PollOutcome.TIMEOUT, current, attempts)
            await self._sleep(self._interval_seconds)
            current = await self._reader.get_run(thread_id, run.run_id)
            attempts += 1
