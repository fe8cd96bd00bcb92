"""Types for the chat payloads exchanged with clients and with fal.

Types are separated into:
- OpenAI-compatible types: inbound requests and outbound responses/chunks
- fal types: the any-llm input, final result and streaming events
"""

from typing import Any
from typing_extensions import TypedDict


# =============================================================================
# OpenAI-Compatible Types
# =============================================================================


class ChatMessage(TypedDict, total=False):
    """A message in a chat conversation (OpenAI format).

    Attributes:
        role: "system", "user" or "assistant". Any other role is dropped
            by the prompt composer.
        content: Message text. None is treated as an empty string.
    """
    role: str
    content: str | None


class Usage(TypedDict):
    """Token usage. fal does not report token counts, so all are None."""
    prompt_tokens: int | None
    completion_tokens: int | None
    total_tokens: int | None


class ResponseMessage(TypedDict):
    role: str
    content: str


class Choice(TypedDict, total=False):
    """A choice in a chat completion response or chunk.

    Attributes:
        index: Always 0; fal returns a single completion.
        message: Full assistant message (non-streaming responses and
            streaming error chunks).
        delta: Incremental content (streaming chunks).
        finish_reason: None while streaming, then "stop" or "error".
    """
    index: int
    message: ResponseMessage
    delta: dict[str, Any]
    finish_reason: str | None


class ChatCompletionResponse(TypedDict, total=False):
    """Non-streaming chat completion response."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage
    system_fingerprint: str | None
    fal_reasoning: Any


class ChatCompletionChunk(TypedDict):
    """A single SSE chunk of a streaming chat completion."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]


# =============================================================================
# fal any-llm Types
# =============================================================================


class FalInput(TypedDict, total=False):
    """Arguments sent to fal-ai/any-llm.

    system_prompt is omitted entirely when it would be empty.
    """
    model: str
    prompt: str
    system_prompt: str
    reasoning: bool


class FalResult(TypedDict, total=False):
    """Final result of a non-streaming any-llm call."""
    output: str
    error: Any
    requestId: str | None
    reasoning: Any
    partial: bool


class FalStreamEvent(TypedDict, total=False):
    """One streaming event. output is the cumulative text so far."""
    output: str
    partial: bool
    error: Any
