"""OpenAI chat <-> fal any-llm translation helpers.

Flattens OpenAI chat messages into fal's bounded prompt slots, maps fal
results back to chat completions, and rebuilds incremental deltas from
fal's cumulative stream snapshots.
"""

from .delta import OutputChunk, StreamState, iter_deltas, reconstruct
from .prompt_composer import (
    HISTORY_SEPARATOR,
    ComposedPrompt,
    PromptBudgets,
    compose_prompt,
)
from .stream_adapter import (
    FalToChatStreamAdapter,
    adapt_fal_stream_to_chat,
    stream_error_frame,
)
from .translator import (
    build_fal_input,
    fal_error_body,
    fal_result_to_chat_completion,
    validate_chat_payload,
)

__all__ = [
    "ComposedPrompt",
    "FalToChatStreamAdapter",
    "HISTORY_SEPARATOR",
    "OutputChunk",
    "PromptBudgets",
    "StreamState",
    "adapt_fal_stream_to_chat",
    "build_fal_input",
    "compose_prompt",
    "fal_error_body",
    "fal_result_to_chat_completion",
    "iter_deltas",
    "reconstruct",
    "stream_error_frame",
    "validate_chat_payload",
]
