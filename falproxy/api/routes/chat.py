"""OpenAI-compatible chat completions endpoint."""

import json
import logging
from typing import Any

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from ...core import FalBackend, InvalidRequestError
from ...messages import (
    FalToChatStreamAdapter,
    build_fal_input,
    compose_prompt,
    fal_error_body,
    fal_result_to_chat_completion,
    validate_chat_payload,
)

logger = logging.getLogger("falproxy")

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _invalid_request(message: str, code: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={
            "error": {
                "message": message,
                "type": "invalid_request_error",
                "code": code,
            }
        },
    )


async def _read_payload(request: Request) -> Any:
    body = await request.body()
    try:
        return json.loads(body or b"{}")
    except json.JSONDecodeError as exc:
        logger.error(f"Invalid JSON payload: {exc}")
        raise _invalid_request("Invalid JSON payload", "invalid_json") from exc


async def _complete(backend: FalBackend, fal_input: dict, model: str) -> Response:
    logger.info("Executing non-stream request...")
    result = await backend.subscribe(fal_input)
    if result.get("error"):
        logger.error(f"Fal-ai returned an error in non-stream mode: {result['error']}")
        return JSONResponse(status_code=500, content=fal_error_body(result["error"]))
    return JSONResponse(content=fal_result_to_chat_completion(result, model))


def _stream(backend: FalBackend, fal_input: dict, model: str) -> StreamingResponse:
    adapter = FalToChatStreamAdapter(model)
    events = backend.stream(fal_input)
    return StreamingResponse(
        adapter.adapt_stream(events),
        media_type="text/event-stream; charset=utf-8",
        headers=STREAM_HEADERS,
    )


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.

    POST /v1/chat/completions

    Composes fal's prompt/system_prompt from the messages, calls
    fal-ai/any-llm, and maps the result (or stream) back to OpenAI format.
    """
    logger.info(f"Handling {request.method} request to {request.url.path}")
    settings = request.app.state.settings
    backend: FalBackend = request.app.state.backend

    payload = await _read_payload(request)
    try:
        model, messages = validate_chat_payload(payload)
    except InvalidRequestError as exc:
        raise _invalid_request(exc.message, exc.code) from exc

    is_stream = bool(payload.get("stream", False))
    logger.info(f"Received chat completion request for model: {model}, stream: {is_stream}")

    try:
        composed = compose_prompt(messages, settings.budgets)
        fal_input = build_fal_input(model, composed, payload.get("reasoning", False))
        logger.info(
            f"System prompt length: {len(composed.system_prompt)}, "
            f"prompt length: {len(composed.prompt)}"
        )

        if is_stream:
            return _stream(backend, fal_input, model)
        return await _complete(backend, fal_input, model)
    except Exception as exc:
        logger.error(f"Unhandled error in /v1/chat/completions: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error in Proxy",
                "details": str(exc) or exc.__class__.__name__,
            },
        )
