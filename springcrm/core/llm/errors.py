"""Failure taxonomy for the upstream chat-completion integration."""

from __future__ import annotations


class LLMError(Exception):
    """Base class for every failure of a single upstream exchange."""


class TransportError(LLMError):
    """The request never produced an HTTP response (connect, TLS, timeout)."""


class UpstreamError(LLMError):
    """The upstream answered with a non-2xx status or an error envelope."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class DecodeError(LLMError):
    """The response body is not JSON or lacks the expected `choices` shape."""


class ProtocolShapeError(LLMError):
    """A `tool_calls` response without a usable tool call."""


class AnalysisFailed(Exception):
    """Both the tool-enabled path and its plain fallback failed.

    Only the fallback's failure is reported; it is also chained as `__cause__`.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail
