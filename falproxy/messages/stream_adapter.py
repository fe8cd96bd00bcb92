"""Stream adapter converting fal any-llm stream events to OpenAI chunk SSE.

fal Stream Events (cumulative output):
    data: {"output":"Hi","partial":true}
    data: {"output":"Hi there","partial":true}
    data: {"output":"Hi there!","partial":false}

OpenAI Chat Completion Chunks (incremental):
    data: {"object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":"Hi"},"finish_reason":null}],...}
    data: {"object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":" there"},"finish_reason":null}],...}
    data: {"object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":"!"},"finish_reason":"stop"}],...}
    data: [DONE]

A fal error event becomes one chunk with finish_reason "error" and an
embedded assistant message, followed by [DONE].
"""

import asyncio
import logging
import time
from typing import Any, AsyncIterator

from ..core.sse import SSE_DONE, format_sse_data
from ..types import ChatCompletionChunk, FalStreamEvent
from .delta import OutputChunk, iter_deltas
from .translator import completion_id, proxy_error_details, stream_error_message

logger = logging.getLogger("falproxy")


def stream_error_frame(exc: BaseException) -> bytes:
    """SSE frame reporting a failure inside the proxy while streaming."""
    return format_sse_data({
        "error": {
            "message": "Stream processing error",
            "type": "proxy_error",
            "details": proxy_error_details(exc),
        }
    })


async def _close_events(events: Any) -> None:
    aclose = getattr(events, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as exc:
        logger.warning(f"Failed to close fal event stream: {exc}")


class FalToChatStreamAdapter:
    """Converts a fal event stream into OpenAI chat.completion.chunk frames.

    One adapter serves exactly one streaming request; the delta state lives
    inside the iteration and is dropped when it ends.
    """

    def __init__(self, model: str):
        self.model = model
        self.completion_id = completion_id()
        self.chunk_count = 0

    async def adapt_stream(self, events: AsyncIterator[FalStreamEvent]) -> AsyncIterator[bytes]:
        """Transform fal events to OpenAI SSE frames, ending with [DONE].

        If the upstream raises, a best-effort proxy error frame and [DONE]
        are emitted instead. The upstream is closed on every exit path.
        """
        try:
            async for chunk in iter_deltas(events):
                self.chunk_count += 1
                yield self._format_chunk(chunk)
            yield SSE_DONE
            logger.info(f"Stream finished after {self.chunk_count} chunks.")
        except asyncio.CancelledError:
            logger.info("Stream cancelled by client")
            raise
        except Exception as exc:
            logger.error(f"Error during fal stream processing: {exc}")
            try:
                yield stream_error_frame(exc)
                yield SSE_DONE
            except Exception as final_error:
                logger.error(f"Error sending stream error message to client: {final_error}")
        finally:
            await _close_events(events)

    def _format_chunk(self, chunk: OutputChunk) -> bytes:
        if chunk.is_error:
            return format_sse_data(self._error_chunk(chunk.error_info))
        return format_sse_data(self._content_chunk(chunk))

    def _content_chunk(self, chunk: OutputChunk) -> ChatCompletionChunk:
        return {
            "id": self.completion_id,
            "object": "chat.completion.chunk",
            "created": int(time.time()),
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "delta": {"content": chunk.delta_text},
                    "finish_reason": "stop" if chunk.is_final else None,
                }
            ],
        }

    def _error_chunk(self, error_info: Any) -> ChatCompletionChunk:
        return {
            "id": f"{self.completion_id}-error",
            "object": "chat.completion.chunk",
            "created": int(time.time()),
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "delta": {},
                    "finish_reason": "error",
                    "message": {
                        "role": "assistant",
                        "content": stream_error_message(error_info),
                    },
                }
            ],
        }


async def adapt_fal_stream_to_chat(
    model: str,
    events: AsyncIterator[FalStreamEvent],
) -> AsyncIterator[bytes]:
    """Convenience function to adapt a fal event stream to OpenAI chunks."""
    adapter = FalToChatStreamAdapter(model)
    async for frame in adapter.adapt_stream(events):
        yield frame
