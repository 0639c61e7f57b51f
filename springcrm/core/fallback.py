"""Degrade-on-error policy around the web-search tool path."""

from __future__ import annotations

from typing import Sequence

from springcrm.core.llm import AnalysisFailed, ChatCompletionClient, ChatMessage, LLMError
from springcrm.core.tool_use import ToolUseOrchestrator
from springcrm.utils.logging import get_logger

log = get_logger(__name__)


class FallbackController:
    """Tool path first; on any failure exactly one plain completion, no delay."""

    def __init__(
        self,
        client: ChatCompletionClient,
        orchestrator: ToolUseOrchestrator,
        search_tool_name: str,
    ) -> None:
        self._client = client
        self._orchestrator = orchestrator
        self._search_tool_name = search_tool_name

    async def answer_with_search(
        self, messages: Sequence[ChatMessage], credential: str
    ) -> str:
        try:
            return await self._orchestrator.complete_with_tool(
                messages, credential, self._search_tool_name
            )
        except LLMError as e:
            log.warning(
                "search_path_failed",
                error_type=type(e).__name__,
                error=str(e),
                action="plain_completion",
            )

        try:
            completion = await self._client.complete(messages, credential)
        except LLMError as e:
            log.error("plain_completion_failed", error_type=type(e).__name__, error=str(e))
            raise AnalysisFailed(str(e)) from e
        return completion.content
