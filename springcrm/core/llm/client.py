"""OpenAI-compatible chat-completion client with per-call credentials."""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from springcrm.config import LLMConfig
from springcrm.core.llm.errors import DecodeError, TransportError, UpstreamError
from springcrm.core.llm.types import ChatChoice, ChatCompletion, ChatMessage, ToolDeclaration
from springcrm.utils.logging import get_logger

log = get_logger(__name__)


def _error_message(data: Any) -> str:
    """Pull the human-readable message out of an upstream error envelope."""
    if not isinstance(data, dict):
        return ""
    err = data.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or err.get("type") or err)
    if err:
        return str(err)
    return ""


class ChatCompletionClient:
    """One request, one response. No retries, no stored credentials.

    The underlying `httpx.AsyncClient` is shared by every request and only
    carries the connection pool; the bearer credential is attached per call.
    """

    def __init__(
        self, config: LLMConfig, http_client: httpx.AsyncClient | None = None
    ) -> None:
        self._config = config
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout,
            base_url=config.base_url.rstrip("/"),
        )

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        credential: str,
        tools: Sequence[ToolDeclaration] | None = None,
    ) -> ChatCompletion:
        if not messages:
            raise ValueError("messages must not be empty")
        if not credential:
            raise ValueError("credential must not be empty")
        if tools is not None and not tools:
            raise ValueError("tools, when given, must not be empty")

        body = self._build_body(messages, tools)
        log.debug(
            "llm_request",
            model=self._config.model,
            message_count=len(messages),
            tools=[t.name for t in tools] if tools else [],
        )

        try:
            resp = await self._client.post(
                "/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {credential}"},
            )
        except httpx.DecodingError as e:
            log.warning("llm_decode_error", error=type(e).__name__)
            raise DecodeError(f"Undecodable response body: {e}") from e
        except httpx.RequestError as e:
            log.warning("llm_transport_error", error=type(e).__name__)
            raise TransportError(str(e) or type(e).__name__) from e

        completion = self._parse_response(resp)
        log.info(
            "llm_response",
            finish_reason=completion.first.finish_reason,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
        )
        return completion

    async def close(self) -> None:
        await self._client.aclose()

    def _build_body(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolDeclaration] | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._config.model,
            "messages": [m.to_api() for m in messages],
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
        }
        if tools:
            body["tools"] = [t.to_api() for t in tools]
        return body

    def _parse_response(self, resp: httpx.Response) -> ChatCompletion:
        try:
            data: Any = resp.json()
        except ValueError:
            data = None

        if not resp.is_success:
            message = _error_message(data) or f"HTTP {resp.status_code}: {resp.text[:200]}"
            log.warning("llm_upstream_error", status=resp.status_code)
            raise UpstreamError(message, status=resp.status_code)

        if not isinstance(data, dict):
            raise DecodeError("Response body is not a JSON object")

        if data.get("error"):
            log.warning("llm_upstream_error", status=resp.status_code)
            raise UpstreamError(_error_message(data), status=resp.status_code)

        raw_choices = data.get("choices")
        if not isinstance(raw_choices, list) or not raw_choices:
            raise DecodeError("Response contains no choices")

        choices: list[ChatChoice] = []
        for raw in raw_choices:
            if not isinstance(raw, dict) or not isinstance(raw.get("message"), dict):
                raise DecodeError("Malformed choice in response")
            if not isinstance(raw["message"].get("content"), (str, type(None))):
                raise DecodeError("Message content is not a string")
            choices.append(ChatChoice(
                message=ChatMessage.from_api(raw["message"]),
                finish_reason=raw.get("finish_reason"),
            ))

        usage = data.get("usage") or {}
        if not isinstance(usage, dict):
            raise DecodeError("Malformed usage in response")
        return ChatCompletion(
            choices=choices,
            model=data.get("model", ""),
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
        )
