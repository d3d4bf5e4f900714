from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol
from uuid import uuid4

from coachrelay.app.assistants.client import RemoteTransportError
from coachrelay.app.assistants.contracts import RunJob
from coachrelay.app.observability.telemetry import emit_turn_event
from coachrelay.app.turns.contracts import (
    TurnError,
    TurnErrorKind,
    TurnFailure,
    TurnResult,
)
from coachrelay.app.turns.extraction import extract_reply
from coachrelay.app.turns.polling import PollOutcome, RunPoller, SleepFn
from coachrelay.core.config import RelayConfig, missing_relay_settings

LOGGER = logging.getLogger(__name__)


class ConversationService(Protocol):
    async def create_thread(self) -> str: ...

    async def add_user_message(self, thread_id: str, content: str) -> None: ...

    async def create_run(self, thread_id: str, assistant_id: str) -> RunJob: ...

    async def get_run(self, thread_id: str, run_id: str) -> RunJob: ...

    async def list_messages(
        self, thread_id: str, limit: int
    ) -> list[dict[str, Any]]: ...


def normalize_thread_id(thread_id: object) -> str | None:
    if not isinstance(thread_id, str):
        return None
    normalized = thread_id.strip()
    return normalized if normalized else None


def validate_user_message(user_message: object, max_chars: int) -> str:
    text = user_message.strip() if isinstance(user_message, str) else ""
    if not text:
        raise TurnError(
            TurnFailure(kind=TurnErrorKind.INVALID_INPUT, message="Missing message")
        )
    if len(text) > max_chars:
        raise TurnError(
            TurnFailure(kind=TurnErrorKind.INVALID_INPUT, message="Message too long")
        )
    return text


class TurnOrchestrator:
    def __init__(
        self,
        config: RelayConfig,
        service: ConversationService,
        *,
        sleep: SleepFn = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._service = service
        self._logger = logger or LOGGER
        self._poller = RunPoller(
            service,
            interval_seconds=config.poll_interval_seconds,
            max_attempts=config.poll_max_attempts,
            sleep=sleep,
        )

    async def run_turn(
        self, user_message: str, thread_id: str | None = None
    ) -> TurnResult:
        request_id = uuid4().hex
        try:
            return await self._run_turn(request_id, user_message, thread_id)
        except TurnError as exc:
            failure = exc.failure
            emit_turn_event(
                request_id,
                "turn_failed",
                logger=self._logger,
                level=logging.WARNING,
                kind=failure.kind,
                thread_id=failure.thread_id,
                status=failure.run_status,
                last_error=failure.last_error,
                diagnostic=failure.diagnostic,
            )
            raise

    async def _run_turn(
        self, request_id: str, user_message: str, thread_id: str | None
    ) -> TurnResult:
        text = validate_user_message(user_message, self._config.max_message_chars)
        missing = missing_relay_settings(self._config)
        if missing:
            raise TurnError(
                TurnFailure(
                    kind=TurnErrorKind.CONFIGURATION,
                    message="Missing server env vars",
                    diagnostic={"missing": missing},
                )
            )
        assistant_id = self._config.assistant_id or ""

        resolved_thread_id = normalize_thread_id(thread_id)
        try:
            if resolved_thread_id is None:
                resolved_thread_id = await self._service.create_thread()
                emit_turn_event(
                    request_id,
                    "thread_created",
                    logger=self._logger,
                    thread_id=resolved_thread_id,
                )

            await self._service.add_user_message(resolved_thread_id, text)
            run = await self._service.create_run(resolved_thread_id, assistant_id)
            emit_turn_event(
                request_id,
                "run_created",
                logger=self._logger,
                thread_id=resolved_thread_id,
                run_id=run.run_id,
                status=run.status,
            )

            result = await self._poller.wait(resolved_thread_id, run)
            emit_turn_event(
                request_id,
                "run_settled",
                logger=self._logger,
                thread_id=resolved_thread_id,
                run_id=run.run_id,
                status=result.run.status,
                attempts=result.attempts,
                outcome=result.outcome,
            )
            if result.outcome == PollOutcome.TIMEOUT:
                raise TurnError(
                    TurnFailure(
                        kind=TurnErrorKind.POLL_TIMEOUT,
                        message="Run timeout",
                        thread_id=resolved_thread_id,
                        run_status=result.run.status,
                    )
                )
            if result.outcome == PollOutcome.TERMINAL_FAILURE:
                settled = await self._with_terminal_detail(
                    request_id, resolved_thread_id, result.run, result.attempts
                )
                raise TurnError(
                    TurnFailure(
                        kind=TurnErrorKind.RUN_TERMINAL,
                        message="Run error",
                        thread_id=resolved_thread_id,
                        run_status=settled.status,
                        last_error=settled.last_error,
                    )
                )

            messages = await self._service.list_messages(
                resolved_thread_id, self._config.message_page_limit
            )
        except RemoteTransportError as exc:
            raise TurnError(
                TurnFailure(
                    kind=TurnErrorKind.REMOTE_TRANSPORT,
                    message="Server error",
                    thread_id=resolved_thread_id,
                    diagnostic=exc.diagnostic(),
                )
            ) from exc

        reply = extract_reply(messages)
        if not reply:
            raise TurnError(
                TurnFailure(
                    kind=TurnErrorKind.NO_REPLY,
                    message="No assistant reply",
                    thread_id=resolved_thread_id,
                    diagnostic={"message_count": len(messages)},
                )
            )
        emit_turn_event(
            request_id,
            "turn_completed",
            logger=self._logger,
            thread_id=resolved_thread_id,
            run_id=run.run_id,
            reply_chars=len(reply),
        )
        return TurnResult(reply=reply, thread_id=resolved_thread_id)

    async def _with_terminal_detail(
        self, request_id: str, thread_id: str, run: RunJob, attempts: int
    ) -> RunJob:
        # The creation response carries no last_error; fetch it once.
        if attempts > 0 or run.last_error is not None:
            return run
        try:
            refreshed = await self._service.get_run(thread_id, run.run_id)
        except RemoteTransportError as exc:
            emit_turn_event(
                request_id,
                "terminal_detail_unavailable",
                logger=self._logger,
                level=logging.WARNING,
                thread_id=thread_id,
                run_id=run.run_id,
                status=run.status,
                diagnostic=exc.diagnostic(),
            )
            return run
        return refreshed if refreshed.is_terminal_failure else run
