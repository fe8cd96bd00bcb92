"""Type definitions for the proxy."""

from .chat import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    FalInput,
    FalResult,
    FalStreamEvent,
    ResponseMessage,
    Usage,
)

__all__ = [
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "FalInput",
    "FalResult",
    "FalStreamEvent",
    "ResponseMessage",
    "Usage",
]
