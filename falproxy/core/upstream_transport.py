"""In-process transports for fal base URLs.

Tests (and embedders running a fal stand-in in the same process) mount an
httpx transport on a base URL; ``FalBackend`` asks the registry for the
transport matching each request URL and falls back to real networking.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger("falproxy")


def _origin(url: str) -> Optional[str]:
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.hostname:
        return None
    origin = f"{parts.scheme.lower()}://{parts.hostname.lower()}"
    if parts.port is not None:
        origin = f"{origin}:{parts.port}"
    return origin


class TransportRegistry:
    """Maps a URL origin (scheme, host and port) to an httpx transport."""

    def __init__(self) -> None:
        self._by_origin: dict[str, httpx.AsyncBaseTransport] = {}

    def __len__(self) -> int:
        return len(self._by_origin)

    def mount(self, base_url: str, transport: httpx.AsyncBaseTransport) -> None:
        origin = _origin(base_url)
        if origin is None:
            raise ValueError(f"cannot mount a transport on {base_url!r}: no scheme or host")
        self._by_origin[origin] = transport
        logger.debug(f"Mounted upstream transport on {origin}")

    def lookup(self, url: str) -> Optional[httpx.AsyncBaseTransport]:
        origin = _origin(url) if url else None
        if origin is None:
            return None
        return self._by_origin.get(origin)

    def clear(self) -> None:
        self._by_origin.clear()


upstream_transports = TransportRegistry()
