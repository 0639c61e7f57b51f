"""Two-phase tool-use protocol for upstream-executed tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from springcrm.core.llm import (
    ChatCompletion,
    ChatCompletionClient,
    ChatMessage,
    ProtocolShapeError,
    ToolCall,
    ToolDeclaration,
)
from springcrm.utils.logging import get_logger

log = get_logger(__name__)

FINISH_TOOL_CALLS = "tool_calls"


class TurnDecision(Enum):
    ANSWER = "answer"
    CALL_TOOL = "call_tool"


@dataclass(frozen=True)
class ToolTurn:
    decision: TurnDecision
    answer: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    tool_call: ToolCall | None = None
    ignored_calls: int = 0


def _parse_tool_call(raw: Any) -> ToolCall:
    if not isinstance(raw, dict):
        raise ProtocolShapeError("Tool call is not an object")
    fn = raw.get("function")
    call_id = raw.get("id")
    if not isinstance(fn, dict) or not call_id:
        raise ProtocolShapeError("Tool call lacks an id or function")
    arguments = fn.get("arguments", "")
    if not isinstance(arguments, str):
        raise ProtocolShapeError("Tool call arguments are not a string payload")
    return ToolCall(id=str(call_id), name=str(fn.get("name", "")), arguments=arguments)


def plan_tool_turn(
    transcript: Sequence[ChatMessage],
    response: ChatCompletion,
    tool_name: str,
) -> ToolTurn:
    """Decide what follows a phase-1 response.

    A final answer ends the exchange. A tool call yields the phase-2
    transcript: the phase-1 messages, the assistant message exactly as
    received, then a tool message answering the first call with its own
    arguments (the upstream already ran the tool). Later calls are dropped.
    """
    choice = response.first
    if choice.finish_reason != FINISH_TOOL_CALLS:
        return ToolTurn(decision=TurnDecision.ANSWER, answer=choice.message.content)

    raw_calls = choice.message.tool_calls
    if not raw_calls:
        raise ProtocolShapeError("finish_reason is tool_calls but no tool calls were returned")

    call = _parse_tool_call(raw_calls[0])
    tool_message = ChatMessage(
        role="tool",
        content=call.arguments,
        tool_call_id=call.id,
        name=tool_name,
    )
    return ToolTurn(
        decision=TurnDecision.CALL_TOOL,
        messages=[*transcript, choice.message, tool_message],
        tool_call=call,
        ignored_calls=len(raw_calls) - 1,
    )


class ToolUseOrchestrator:
    """Runs phase 1 with a tool declaration and, if asked, phase 2 without."""

    def __init__(self, client: ChatCompletionClient) -> None:
        self._client = client

    async def complete_with_tool(
        self,
        messages: Sequence[ChatMessage],
        credential: str,
        tool_name: str,
    ) -> str:
        declaration = ToolDeclaration(name=tool_name)
        first = await self._client.complete(messages, credential, tools=[declaration])

        turn = plan_tool_turn(messages, first, tool_name)
        if turn.decision is TurnDecision.ANSWER:
            return turn.answer

        assert turn.tool_call is not None
        if turn.ignored_calls:
            log.warning("tool_calls_ignored", tool=tool_name, ignored=turn.ignored_calls)
        log.info("tool_call_relayed", tool=tool_name, requested=turn.tool_call.name)

        second = await self._client.complete(turn.messages, credential)
        return second.content
