"""Core module initialization."""

from .backend import FalBackend, format_httpx_error
from .exceptions import BackendError, ConfigurationError, InvalidRequestError, ProxyError
from .sse import SSE_DONE, SSEJSONDecoder, format_sse_data

__all__ = [
    "BackendError",
    "ConfigurationError",
    "FalBackend",
    "InvalidRequestError",
    "ProxyError",
    "SSEJSONDecoder",
    "SSE_DONE",
    "format_httpx_error",
    "format_sse_data",
]
