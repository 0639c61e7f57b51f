"""Assistant endpoints: general question, company research, customer analysis."""

from __future__ import annotations

from typing import Any

from aiohttp import web

from springcrm.api.responses import ApiError, ok, read_json
from springcrm.core.assistant import Assistant, CustomerNotFound
from springcrm.core.llm import AnalysisFailed, LLMError
from springcrm.utils.logging import get_logger

log = get_logger(__name__)


def _text(value: Any) -> str:
    """Stripped string value; null and non-string JSON values count as missing."""
    return value.strip() if isinstance(value, str) else ""


def _credential(request: web.Request, body: dict[str, Any]) -> str:
    """The caller's upstream API key, from the body or the X-Api-Key header."""
    key = _text(body.get("apiKey")) or _text(request.headers.get("X-Api-Key"))
    if not key:
        raise ApiError(400, "An AI API key is required")
    return key


class AssistantHandlers:
    def __init__(self, assistant: Assistant) -> None:
        self._assistant = assistant

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/ai/ask", self.ask)
        router.add_post("/api/ai/company-research", self.company_research)
        router.add_post("/api/ai/customers/{id}/analysis", self.customer_analysis)

    async def ask(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        question = _text(body.get("question"))
        if not question:
            raise ApiError(400, "Please enter a question")
        credential = _credential(request, body)
        answer = await self._run(self._assistant.ask(question, credential))
        return ok(response=answer)

    async def company_research(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        query = _text(body.get("query"))
        if not query:
            raise ApiError(400, "Please describe the company to research")
        credential = _credential(request, body)
        answer = await self._run(self._assistant.research_company(query, credential))
        return ok(response=answer)

    async def customer_analysis(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        credential = _credential(request, body)
        customer_id = request.match_info["id"]
        try:
            answer = await self._run(self._assistant.analyze_customer(customer_id, credential))
        except CustomerNotFound:
            raise ApiError(404, "Customer not found") from None
        return ok(response=answer)

    async def _run(self, call: Any) -> str:
        try:
            return await call
        except AnalysisFailed as e:
            log.warning("assistant_failed", error=e.detail)
            raise ApiError(502, f"AI analysis failed: {e.detail}") from e
        except LLMError as e:
            log.warning("assistant_failed", error_type=type(e).__name__, error=str(e))
            raise ApiError(502, f"AI service error: {e}") from e
