"""Upstream chat-completion subpackage."""

from springcrm.core.llm.client import ChatCompletionClient
from springcrm.core.llm.errors import (
    AnalysisFailed,
    DecodeError,
    LLMError,
    ProtocolShapeError,
    TransportError,
    UpstreamError,
)
from springcrm.core.llm.types import (
    ChatChoice,
    ChatCompletion,
    ChatMessage,
    ToolCall,
    ToolDeclaration,
)

__all__ = [
    "ChatCompletionClient",
    "ChatChoice",
    "ChatCompletion",
    "ChatMessage",
    "ToolCall",
    "ToolDeclaration",
    "LLMError",
    "TransportError",
    "UpstreamError",
    "DecodeError",
    "ProtocolShapeError",
    "AnalysisFailed",
]
