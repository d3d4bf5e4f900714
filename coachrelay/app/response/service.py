from __future__ import annotations

from typing import Any

from coachrelay.app.turns.contracts import TurnErrorKind, TurnFailure

HTTP_STATUS_BY_KIND = {
    TurnErrorKind.INVALID_INPUT: 400,
    TurnErrorKind.CONFIGURATION: 500,
    TurnErrorKind.REMOTE_TRANSPORT: 500,
    TurnErrorKind.RUN_TERMINAL: 502,
    TurnErrorKind.POLL_TIMEOUT: 504,
    TurnErrorKind.NO_REPLY: 502,
}


def _redacted_detail(diagnostic: dict[str, Any] | None) -> dict[str, Any]:
    diagnostic = diagnostic or {}
    return {
        "message": diagnostic.get("message") or "unknown",
        "status": diagnostic.get("status"),
        "url": diagnostic.get("url"),
    }


def build_failure_payload(failure: TurnFailure) -> tuple[int, dict[str, Any]]:
    """Map a classified turn failure to an HTTP status and a caller-safe body.

    The remote response body stays in server logs; only the request outcome,
    run status and the remote ``last_error`` are returned to the caller.
    """
    status_code = HTTP_STATUS_BY_KIND.get(failure.kind, 500)
    payload: dict[str, Any] = {"error": failure.message}

    if failure.kind == TurnErrorKind.REMOTE_TRANSPORT:
        payload["detail"] = _redacted_detail(failure.diagnostic)
    elif failure.kind == TurnErrorKind.RUN_TERMINAL:
        payload["status"] = failure.run_status
        payload["last_error"] = failure.last_error
    elif failure.kind == TurnErrorKind.POLL_TIMEOUT:
        payload["status"] = failure.run_status

    if failure.thread_id:
        payload["threadId"] = failure.thread_id
    return status_code, payload
