"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import json
from typing import Any, Callable, Generator, Iterable

import httpx
import pytest

from falproxy.config_loader import ProxySettings
from falproxy.messages import PromptBudgets

FAL_BASE_URL = "http://fal.local"


@pytest.fixture(autouse=True)
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear upstream transport registry after each test."""
    from falproxy.core.upstream_transport import upstream_transports

    yield
    upstream_transports.clear()


def build_settings(
    *,
    system_prompt_limit: int = 4800,
    prompt_limit: int = 4800,
    models: tuple[str, ...] = ("openai/gpt-4o", "fal-model"),
) -> ProxySettings:
    """Build settings pointing at the fake fal host."""
    return ProxySettings(
        fal_key="test-fal-key",
        budgets=PromptBudgets(
            system_prompt_limit=system_prompt_limit,
            prompt_limit=prompt_limit,
        ),
        fal_base_url=FAL_BASE_URL,
        fal_endpoint="fal-ai/any-llm",
        fal_timeout=5,
        supported_models=models,
    )


def sse_body(events: Iterable[Any]) -> bytes:
    """Encode fal stream events as an SSE body."""
    return b"".join(
        f"data: {json.dumps(event, ensure_ascii=False)}\n\n".encode("utf-8")
        for event in events
    )


def split_inside(body: bytes, text: str) -> tuple[bytes, bytes]:
    """Cut body after the first byte of the first occurrence of text."""
    cut = body.index(text.encode("utf-8")) + 1
    return body[:cut], body[cut:]


class ChunkedBody(httpx.AsyncByteStream):
    """Response body delivered to the client in the given byte parts."""

    def __init__(self, *parts: bytes) -> None:
        self.parts = parts

    async def __aiter__(self):
        for part in self.parts:
            yield part


class FakeFal:
    """Records requests to the fake fal host and answers with a handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def register_fal() -> Callable[[Callable[[httpx.Request], httpx.Response]], FakeFal]:
    """Register a MockTransport for the fake fal host."""
    from falproxy.core.upstream_transport import upstream_transports

    def _register(handler: Callable[[httpx.Request], httpx.Response]) -> FakeFal:
        fake = FakeFal(handler)
        upstream_transports.mount(FAL_BASE_URL, httpx.MockTransport(fake))
        return fake

    return _register
