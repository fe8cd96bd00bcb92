"""Tests for the fal backend client."""

import httpx
import pytest

from conftest import FAL_BASE_URL, ChunkedBody, split_inside, sse_body
from falproxy.core import backend as backend_module
from falproxy.core.backend import FalBackend, format_httpx_error
from falproxy.core.exceptions import BackendError


def _backend(**overrides) -> FalBackend:
    params = {"api_key": "secret", "base_url": FAL_BASE_URL, "timeout": 5}
    params.update(overrides)
    return FalBackend(**params)


class TestFalBackendUrls:
    def test_build_url(self):
        backend = _backend(base_url="https://fal.run/", endpoint="/fal-ai/any-llm/")

        assert backend.build_url() == "https://fal.run/fal-ai/any-llm"
        assert backend.build_url(stream=True) == "https://fal.run/fal-ai/any-llm/stream"

    def test_build_headers_use_fal_key_scheme(self):
        headers = _backend().build_headers(stream=True)

        assert headers["Authorization"] == "Key secret"
        assert headers["Accept"] == "text/event-stream"


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_returns_result_with_request_id(self, register_fal):
        fake = register_fal(
            lambda request: httpx.Response(
                200,
                json={"output": "Hello"},
                headers={"x-fal-request-id": "req-1"},
            )
        )

        result = await _backend().subscribe({"model": "m", "prompt": "Human: hi"})

        assert result == {"output": "Hello", "requestId": "req-1"}
        request = fake.requests[0]
        assert str(request.url) == f"{FAL_BASE_URL}/fal-ai/any-llm"
        assert request.headers["authorization"] == "Key secret"
        assert fake.last_json == {"model": "m", "prompt": "Human: hi"}

    @pytest.mark.asyncio
    async def test_http_error_becomes_result_error(self, register_fal):
        register_fal(lambda request: httpx.Response(422, json={"detail": "bad model"}))

        result = await _backend().subscribe({"model": "m", "prompt": ""})

        assert result["error"] == "bad model"

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self, register_fal):
        register_fal(lambda request: httpx.Response(502, text="Bad Gateway"))

        result = await _backend().subscribe({})

        assert result["error"] == {"status": 502, "message": "Bad Gateway"}

    @pytest.mark.asyncio
    async def test_empty_object_error_body_is_still_an_error(self, register_fal):
        register_fal(lambda request: httpx.Response(500, json={}))

        result = await _backend().subscribe({})

        assert result["error"] == {"status": 500, "message": "Internal Server Error"}

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, register_fal):
        register_fal(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(BackendError, match="invalid JSON"):
            await _backend().subscribe({})

    @pytest.mark.asyncio
    async def test_transport_error_raises_backend_error(self, register_fal):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        register_fal(handler)

        with pytest.raises(BackendError, match="ConnectError"):
            await _backend().subscribe({})


class TestStream:
    @pytest.mark.asyncio
    async def test_yields_decoded_events(self, register_fal):
        events = [
            {"output": "Hi", "partial": True},
            {"output": "Hi there", "partial": False},
        ]
        fake = register_fal(
            lambda request: httpx.Response(
                200, content=sse_body(events), headers={"content-type": "text/event-stream"}
            )
        )

        received = [event async for event in _backend().stream({"model": "m"})]

        assert received == events
        assert str(fake.requests[0].url) == f"{FAL_BASE_URL}/fal-ai/any-llm/stream"
        assert fake.requests[0].headers["accept"] == "text/event-stream"

    @pytest.mark.asyncio
    async def test_http_error_yields_error_event(self, register_fal):
        register_fal(lambda request: httpx.Response(401, json={"detail": "Unauthorized"}))

        received = [event async for event in _backend().stream({})]

        assert received == [{"error": "Unauthorized"}]

    @pytest.mark.asyncio
    async def test_empty_object_error_body_yields_error_event(self, register_fal):
        register_fal(lambda request: httpx.Response(503, json={}))

        received = [event async for event in _backend().stream({})]

        assert received == [{"error": {"status": 503, "message": "Service Unavailable"}}]

    @pytest.mark.asyncio
    async def test_character_split_across_network_chunks(self, register_fal):
        events = [
            {"output": "你", "partial": True},
            {"output": "你好", "partial": True},
            {"output": "你好!", "partial": False},
        ]
        first, rest = split_inside(sse_body(events), "好")
        register_fal(lambda request: httpx.Response(200, stream=ChunkedBody(first, rest)))

        received = [event async for event in _backend().stream({})]

        assert received == events

    @pytest.mark.asyncio
    async def test_closes_client_when_consumer_stops(self, register_fal, monkeypatch):
        closed = []
        original = httpx.AsyncClient

        class _TrackingClient(original):
            async def aclose(self):
                closed.append(True)
                await super().aclose()

        monkeypatch.setattr(backend_module.httpx, "AsyncClient", _TrackingClient)
        register_fal(
            lambda request: httpx.Response(
                200, content=sse_body([{"output": "a"}, {"output": "ab"}])
            )
        )

        stream = _backend().stream({})
        first = await stream.__anext__()
        await stream.aclose()

        assert first == {"output": "a"}
        assert closed == [True]


def test_format_httpx_error_includes_timeout():
    backend = _backend(timeout=7)
    exc = httpx.ReadTimeout("timed out")

    message = format_httpx_error(exc, backend, url="http://fal.local/x")

    assert message.startswith("ReadTimeout; timed out")
    assert "url=http://fal.local/x" in message
    assert "timeout=7s" in message
