"""fal any-llm backend client."""

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Optional

import httpx

from ..types import FalResult, FalStreamEvent
from .exceptions import BackendError
from .sse import SSEJSONDecoder
from .upstream_transport import upstream_transports

logger = logging.getLogger("falproxy")

DEFAULT_BASE_URL = "https://fal.run"
DEFAULT_ENDPOINT = "fal-ai/any-llm"
DEFAULT_TIMEOUT = 60
REQUEST_ID_HEADER = "x-fal-request-id"


def format_httpx_error(exc: Any, backend: "FalBackend", url: Optional[str] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    try:
        request = exc.request
    except (AttributeError, RuntimeError):
        # httpx raises RuntimeError when no request is attached
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    if isinstance(exc, httpx.TimeoutException):
        timeout = backend.timeout or DEFAULT_TIMEOUT
        parts.append(f"timeout={timeout}s")

    return "; ".join(parts)


def _error_payload(resp: httpx.Response, data: bytes) -> Any:
    try:
        parsed = json.loads(data or b"null")
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, Mapping):
        error = parsed.get("detail") or parsed.get("error") or dict(parsed)
        if error:
            return error
        # An empty object would read as "no error" downstream.
        return {"status": resp.status_code, "message": resp.reason_phrase}
    text = data.decode("utf-8", errors="replace").strip()
    return {"status": resp.status_code, "message": text or resp.reason_phrase}


@dataclass
class FalBackend:
    """Calls fal-ai/any-llm over fal's synchronous REST endpoints.

    ``subscribe`` posts to ``{base_url}/{endpoint}`` and returns the final
    result; ``stream`` posts to ``{base_url}/{endpoint}/stream`` and yields
    the decoded SSE events. Neither retries.
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    endpoint: str = DEFAULT_ENDPOINT
    timeout: Optional[float] = DEFAULT_TIMEOUT

    def build_url(self, stream: bool = False) -> str:
        base = self.base_url.rstrip("/")
        url = f"{base}/{self.endpoint.strip('/')}"
        if stream:
            url = f"{url}/stream"
        return url

    def build_headers(self, stream: bool = False) -> dict[str, str]:
        headers = {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream" if stream else "application/json",
        }
        return headers

    async def subscribe(self, arguments: Mapping[str, Any]) -> FalResult:
        """Run one completion and return fal's final result.

        HTTP errors are returned as a result carrying ``error`` so callers
        report them like any other backend error. Transport failures and
        undecodable bodies raise BackendError.
        """
        url = self.build_url()
        transport = upstream_transports.lookup(url)
        logger.debug(f"Sending non-stream request to {url}")
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=transport, follow_redirects=True
        ) as client:
            try:
                resp = await client.post(url, headers=self.build_headers(), json=dict(arguments))
            except httpx.HTTPError as exc:
                raise BackendError(format_httpx_error(exc, self, url)) from exc

        request_id = resp.headers.get(REQUEST_ID_HEADER)
        if resp.status_code >= 400:
            logger.warning(f"Non-stream request to {url} returned status {resp.status_code}")
            return {"error": _error_payload(resp, resp.content), "requestId": request_id}

        try:
            body = resp.json()
        except json.JSONDecodeError as exc:
            raise BackendError(f"fal returned invalid JSON: {exc}") from exc
        if not isinstance(body, Mapping):
            raise BackendError("fal returned a non-object result")

        result: FalResult = dict(body)  # type: ignore[assignment]
        if result.get("requestId") is None:
            result["requestId"] = request_id
        return result

    async def stream(self, arguments: Mapping[str, Any]) -> AsyncIterator[FalStreamEvent]:
        """Yield fal stream events in delivery order.

        The HTTP client and response are closed on every exit path, including
        when the consumer stops iterating early.
        """
        url = self.build_url(stream=True)
        stream_timeout = httpx.Timeout(
            connect=self.timeout, read=None, write=self.timeout, pool=self.timeout
        )
        transport = upstream_transports.lookup(url)
        client = httpx.AsyncClient(timeout=stream_timeout, transport=transport, follow_redirects=True)
        resp: Optional[httpx.Response] = None
        try:
            request = client.build_request(
                "POST", url, headers=self.build_headers(stream=True), json=dict(arguments)
            )
            logger.debug(f"Sending streaming request to {url}")
            try:
                resp = await client.send(request, stream=True)
            except httpx.HTTPError as exc:
                raise BackendError(format_httpx_error(exc, self, url)) from exc

            if resp.status_code >= 400:
                data = await resp.aread()
                logger.warning(f"Streaming request to {url} returned status {resp.status_code}")
                yield {"error": _error_payload(resp, data)}
                return

            decoder = SSEJSONDecoder()
            async for chunk in resp.aiter_bytes():
                for event in decoder.feed(chunk):
                    yield event
            for event in decoder.flush():
                yield event
        finally:
            logger.debug(f"Closing stream for {url}")
            if resp is not None:
                await resp.aclose()
            await client.aclose()
