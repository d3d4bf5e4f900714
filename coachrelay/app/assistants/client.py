from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import httpx

from coachrelay.app.assistants.contracts import RunJob, run_from_payload
from coachrelay.core.config import RelayConfig


def _segment(value: str) -> str:
    # Ids are opaque; keep each one inside a single path segment.
    encoded = quote(value, safe="")
    if encoded in {".", ".."}:
        return encoded.replace(".", "%2E")
    return encoded


class RemoteTransportError(Exception):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.url = url
        self.body = body

    def diagnostic(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "status": self.status_code,
            "url": self.url,
            "body": self.body,
        }


class AssistantsClient:
    """Thin JSON client for the threads/messages/runs endpoints."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        beta_header: str,
        http_client: httpx.AsyncClient,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._beta_header = beta_header
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "OpenAI-Beta": self._beta_header,
        }

    async def request_json(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, str | int] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._http_client.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                content=json.dumps(body) if body is not None else None,
            )
        except httpx.HTTPError as exc:
            raise RemoteTransportError(
                f"Request failed: {exc.__class__.__name__}", url=url
            ) from exc

        full_url = str(response.request.url)
        text = response.text
        parsed = True
        try:
            payload: Any = json.loads(text)
        except ValueError:
            parsed = False
            payload = {"_raw": text}

        if not response.is_success:
            raise RemoteTransportError(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                url=full_url,
                body=payload,
            )
        if not parsed or not isinstance(payload, dict):
            raise RemoteTransportError(
                "Unexpected response body",
                status_code=response.status_code,
                url=full_url,
                body=payload,
            )
        return payload

    async def create_thread(self) -> str:
        payload = await self.request_json("POST", "/threads", body={})
        thread_id = payload.get("id")
        if not isinstance(thread_id, str) or not thread_id:
            raise RemoteTransportError(
                "Thread response missing id",
                url=f"{self._base_url}/threads",
                body=payload,
            )
        return thread_id

    async def add_user_message(self, thread_id: str, content: str) -> None:
        await self.request_json(
            "POST",
            f"/threads/{_segment(thread_id)}/messages",
            body={"role": "user", "content": content},
        )

    async def create_run(self, thread_id: str, assistant_id: str) -> RunJob:
        payload = await self.request_json(
            "POST",
            f"/threads/{_segment(thread_id)}/runs",
            body={"assistant_id": assistant_id},
        )
        run = run_from_payload(payload)
        if run is None:
            raise RemoteTransportError(
                "Run response missing id or status",
                url=f"{self._base_url}/threads/{_segment(thread_id)}/runs",
                body=payload,
            )
        return run

    async def get_run(self, thread_id: str, run_id: str) -> RunJob:
        path = f"/threads/{_segment(thread_id)}/runs/{_segment(run_id)}"
        payload = await self.request_json("GET", path)
        run = run_from_payload(payload, run_id=run_id)
        if run is None:
            raise RemoteTransportError(
                "Run response missing status",
                url=f"{self._base_url}{path}",
                body=payload,
            )
        return run

    async def list_messages(self, thread_id: str, limit: int) -> list[dict[str, Any]]:
        payload = await self.request_json(
            "GET",
            f"/threads/{_segment(thread_id)}/messages",
            params={"order": "desc", "limit": limit},
        )
        data = payload.get("data")
        if not isinstance(data, list):
            raise RemoteTransportError(
                "Message list response missing data",
                url=f"{self._base_url}/threads/{_segment(thread_id)}/messages",
                body=payload,
            )
        return [message for message in data if isinstance(message, dict)]


def build_assistants_client(
    config: RelayConfig, http_client: httpx.AsyncClient
) -> AssistantsClient:
    return AssistantsClient(
        base_url=config.base_url,
        api_key=config.api_key or "",
        beta_header=config.beta_header,
        http_client=http_client,
    )
