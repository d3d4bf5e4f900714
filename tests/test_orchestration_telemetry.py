import logging

import pytest

from coachrelay.app.observability.telemetry import emit_turn_event
from coachrelay.app.turns.contracts import TurnError, TurnErrorKind
from coachrelay.app.turns.service import TurnOrchestrator


def test_emit_turn_event_logs_structured_payload(caplog) -> None:
    logger = logging.getLogger("test.telemetry")
    with caplog.at_level(logging.INFO, logger="test.telemetry"):
        emit_turn_event(
            "req-123",
            "run_settled",
            logger=logger,
            thread_id="thread_1",
            attempts=3,
            kind=TurnErrorKind.POLL_TIMEOUT,
        )

    assert any("turn_event" in message for message in caplog.messages)
    assert any('"request_id": "req-123"' in message for message in caplog.messages)
    assert any('"attempts": 3' in message for message in caplog.messages)
    assert any('"kind": "poll_timeout"' in message for message in caplog.messages)


@pytest.mark.asyncio
async def test_failed_turn_logs_diagnostic_without_api_key(
    caplog, make_config, make_service, recording_sleep
) -> None:
    logger = logging.getLogger("test.turns")
    service = make_service(run_statuses=["failed"], last_error={"code": "server_error"})
    orchestrator = TurnOrchestrator(
        make_config(), service, sleep=recording_sleep, logger=logger
    )

    with caplog.at_level(logging.INFO, logger="test.turns"):
        with pytest.raises(TurnError):
            await orchestrator.run_turn("hi")

    assert any('"event": "turn_failed"' in message for message in caplog.messages)
    assert any('"kind": "run_terminal"' in message for message in caplog.messages)
    assert any('"code": "server_error"' in message for message in caplog.messages)
    assert all("sk-test-secret" not in message for message in caplog.messages)
    assert any(record.levelno == logging.WARNING for record in caplog.records)
