"""Incremental deltas from fal's cumulative stream snapshots.

fal streams the whole output generated so far on every event. OpenAI clients
expect only the new text, so each snapshot is diffed against the previous one.

- If the snapshot extends the previous one, the delta is the new suffix.
- If a non-empty snapshot does not extend it, the whole snapshot is sent as
  the delta and tracking restarts from it.
- The final event (``partial`` is False) is always flushed, even when empty,
  so the client sees finish_reason.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Optional

from ..types import FalStreamEvent

logger = logging.getLogger("falproxy")


@dataclass
class StreamState:
    """Per-request delta tracking. Never share across streams."""

    previous_output: str = ""


@dataclass(frozen=True)
class OutputChunk:
    delta_text: str
    is_final: bool
    error_info: Any = None

    @property
    def is_error(self) -> bool:
        return self.error_info is not None


def _event_fields(event: Any) -> tuple[str, bool, Any]:
    if not isinstance(event, Mapping):
        return "", True, None
    output = event.get("output")
    partial = event.get("partial")
    error = event.get("error")
    return (
        output if isinstance(output, str) else "",
        partial if isinstance(partial, bool) else True,
        error if error else None,
    )


def reconstruct(
    event: Any, state: StreamState
) -> tuple[Optional[OutputChunk], StreamState]:
    """Turn one fal stream event into at most one output chunk.

    Args:
        event: Decoded fal stream event.
        state: Tracking state for this stream; updated in place and returned.

    Returns:
        Tuple of (chunk, state). chunk is None when the event carries no new
        text and is not final. An error chunk means the stream must stop.
    """
    current_output, is_partial, error_info = _event_fields(event)

    if error_info is not None:
        logger.error(f"Error received in fal stream event: {error_info}")
        return OutputChunk(delta_text="", is_final=True, error_info=error_info), state

    delta_text = ""
    if current_output.startswith(state.previous_output):
        delta_text = current_output[len(state.previous_output):]
    elif current_output:
        logger.warning(
            "Fal stream output mismatch detected. Sending full current output as delta. "
            f"previous_length={len(state.previous_output)}, current_length={len(current_output)}"
        )
        delta_text = current_output
        state.previous_output = ""
    state.previous_output = current_output

    if delta_text or not is_partial:
        return OutputChunk(delta_text=delta_text, is_final=not is_partial), state
    return None, state


async def iter_deltas(events: AsyncIterator[FalStreamEvent]) -> AsyncIterator[OutputChunk]:
    """Apply reconstruct() over a fal event stream.

    Stops after the first error chunk.
    """
    state = StreamState()
    async for event in events:
        chunk, state = reconstruct(event, state)
        if chunk is None:
            continue
        yield chunk
        if chunk.is_error:
            break
