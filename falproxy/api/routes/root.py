"""Liveness endpoint."""

from fastapi.responses import PlainTextResponse

BANNER = "Fal OpenAI Proxy (System Top + Separator + Recency Strategy) is running."


async def root() -> PlainTextResponse:
    """GET /"""
    return PlainTextResponse(BANNER)
