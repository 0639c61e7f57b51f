"""Chat-completion data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ChatMessage:
    role: str  # "system", "user", "assistant", "tool"
    content: str = ""
    tool_call_id: str | None = None
    name: str | None = None
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    # Exact upstream payload for messages decoded from a response
    raw: dict[str, Any] | None = field(default=None, repr=False, compare=False)

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role="user", content=content)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> ChatMessage:
        tool_calls = payload.get("tool_calls")
        content = payload.get("content")
        return cls(
            role=payload.get("role", "assistant"),
            content=content if isinstance(content, str) else "",
            tool_call_id=payload.get("tool_call_id"),
            name=payload.get("name"),
            tool_calls=list(tool_calls) if isinstance(tool_calls, list) else [],
            raw=dict(payload),
        )

    def to_api(self) -> dict[str, Any]:
        if self.raw is not None:
            return dict(self.raw)
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            data["name"] = self.name
        if self.tool_calls:
            data["tool_calls"] = list(self.tool_calls)
        return data


@dataclass(frozen=True)
class ToolDeclaration:
    """A tool the upstream executes itself (e.g. `$web_search`)."""
    name: str
    type: str = "builtin_function"

    def to_api(self) -> dict[str, Any]:
        return {"type": self.type, "function": {"name": self.name}}


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: str  # opaque payload, echoed back untouched


@dataclass
class ChatChoice:
    message: ChatMessage
    finish_reason: str | None = None


@dataclass
class ChatCompletion:
    choices: list[ChatChoice]
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def first(self) -> ChatChoice:
        return self.choices[0]

    @property
    def content(self) -> str:
        return self.first.message.content
