"""OpenAI Chat Completions <-> fal any-llm translation.

Key mappings:
- OpenAI messages -> fal prompt/system_prompt (see prompt_composer)
- OpenAI reasoning flag -> fal reasoning
- fal output -> OpenAI assistant message with finish_reason "stop"
- fal reasoning -> non-standard ``fal_reasoning`` response field
- fal error -> OpenAI-style error object
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Mapping, Optional

from ..core.exceptions import InvalidRequestError
from ..types import ChatCompletionResponse, ChatMessage, FalInput
from .prompt_composer import ComposedPrompt

logger = logging.getLogger("falproxy")


def completion_id(request_id: Any = None) -> str:
    """Build a chat completion id, preferring fal's request id."""
    suffix = request_id or int(time.time() * 1000)
    return f"chatcmpl-{suffix}"


def _dump_error(error: Any) -> str:
    try:
        return json.dumps(error, ensure_ascii=False)
    except (TypeError, ValueError):
        return json.dumps(str(error), ensure_ascii=False)


def validate_chat_payload(payload: Any) -> tuple[str, list[ChatMessage]]:
    """Check the fields the proxy needs before calling fal.

    Returns:
        Tuple of (model, messages).

    Raises:
        InvalidRequestError: If the payload is not an object, or the model or
            messages array is missing or invalid.
    """
    if not isinstance(payload, Mapping):
        raise InvalidRequestError("Request body must be a JSON object", code="invalid_json_shape")

    model = payload.get("model")
    messages = payload.get("messages")
    if not isinstance(model, str) or not model or not isinstance(messages, list) or not messages:
        logger.error(
            f"Invalid request parameters: model={model!r}, "
            f"messages={len(messages) if isinstance(messages, list) else type(messages).__name__}"
        )
        raise InvalidRequestError(
            "Missing or invalid parameters: model and messages array are required.",
            code="missing_parameter",
        )
    return model, messages


def build_fal_input(model: str, composed: ComposedPrompt, reasoning: Any = False) -> FalInput:
    """Build the any-llm arguments. system_prompt is left out when empty."""
    fal_input: FalInput = {"model": model, "prompt": composed.prompt}
    if composed.system_prompt:
        fal_input["system_prompt"] = composed.system_prompt
    fal_input["reasoning"] = bool(reasoning)
    return fal_input


def fal_result_to_chat_completion(
    result: Mapping[str, Any],
    model: str,
    request_id: Optional[str] = None,
) -> ChatCompletionResponse:
    """Translate a fal final result into an OpenAI chat.completion object.

    The completion id uses ``request_id`` when given, then the result's
    ``requestId``, then the current time.
    """
    response: ChatCompletionResponse = {
        "id": completion_id(request_id or result.get("requestId")),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": result.get("output") or ""},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": None, "completion_tokens": None, "total_tokens": None},
        "system_fingerprint": None,
    }
    reasoning = result.get("reasoning")
    if reasoning:
        response["fal_reasoning"] = reasoning
    return response


def fal_error_body(error: Any) -> dict[str, Any]:
    """OpenAI-style error object for a fal-reported error."""
    return {
        "object": "error",
        "message": f"Fal-ai error: {_dump_error(error)}",
        "type": "fal_ai_error",
        "param": None,
        "code": None,
    }


def stream_error_message(error: Any) -> str:
    return f"Fal Stream Error: {_dump_error(error)}"


def proxy_error_details(exc: Optional[BaseException]) -> str:
    if exc is None:
        return ""
    return str(exc) or exc.__class__.__name__
