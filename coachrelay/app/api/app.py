from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from coachrelay.app.assistants.client import build_assistants_client
from coachrelay.app.readiness import build_readiness_report
from coachrelay.app.response.service import build_failure_payload
from coachrelay.app.turns.contracts import TurnError
from coachrelay.app.turns.polling import SleepFn
from coachrelay.app.turns.service import ConversationService, TurnOrchestrator
from coachrelay.core.config import RelayConfig, load_relay_config, missing_relay_settings

LOGGER = logging.getLogger(__name__)

CHAT_PATHS = ("/api/chat", "/.netlify/functions/coachchat")


def _scalar_text(value: object) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    thread_id: str | None = Field(default=None, alias="threadId")

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: object) -> str:
        return _scalar_text(value) or ""

    @field_validator("thread_id", mode="before")
    @classmethod
    def _coerce_thread_id(cls, value: object) -> str | None:
        return _scalar_text(value)


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    thread_id: str = Field(alias="threadId")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


def _declared_length(request: Request) -> int:
    try:
        return int(request.headers.get("content-length", "0"))
    except ValueError:
        return 0


def create_app(
    config: RelayConfig | None = None,
    *,
    service: ConversationService | None = None,
    sleep: SleepFn | None = None,
) -> FastAPI:
    relay_config = config or load_relay_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http_client = httpx.AsyncClient(timeout=relay_config.http_timeout_seconds)
        app.state.http_client = http_client
        try:
            yield
        finally:
            await http_client.aclose()

    app = FastAPI(
        title=relay_config.app_name,
        version=relay_config.app_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(relay_config.cors_allow_origins),
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    def build_orchestrator(request: Request) -> TurnOrchestrator:
        conversation_service = service or build_assistants_client(
            relay_config, request.app.state.http_client
        )
        if sleep is None:
            return TurnOrchestrator(relay_config, conversation_service)
        return TurnOrchestrator(relay_config, conversation_service, sleep=sleep)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/ready")
    async def ready() -> JSONResponse:
        report = build_readiness_report(relay_config)
        status_code = 200 if bool(report.get("ready")) else 503
        return JSONResponse(content=report, status_code=status_code)

    async def chat(request: Request) -> JSONResponse:
        missing = missing_relay_settings(relay_config)
        if missing:
            LOGGER.error("relay_misconfigured missing=%s", ",".join(missing))
            return _error(500, "Missing server env vars")

        if _declared_length(request) > relay_config.max_body_bytes:
            return _error(400, "Bad request")
        raw_body = await request.body()
        if not raw_body or len(raw_body) > relay_config.max_body_bytes:
            return _error(400, "Bad request")
        try:
            decoded = json.loads(raw_body)
        except ValueError:
            return _error(400, "Bad JSON")
        if not isinstance(decoded, dict):
            return _error(400, "Bad request")
        try:
            payload = ChatRequest.model_validate(decoded)
        except ValidationError:
            return _error(400, "Bad request")

        try:
            result = await build_orchestrator(request).run_turn(
                payload.message, payload.thread_id
            )
        except TurnError as exc:
            status_code, body = build_failure_payload(exc.failure)
            return JSONResponse(content=body, status_code=status_code)

        response = ChatResponse(reply=result.reply, thread_id=result.thread_id)
        return JSONResponse(content=response.model_dump(by_alias=True))

    for path in CHAT_PATHS:
        app.add_api_route(path, chat, methods=["POST"])

    return app
