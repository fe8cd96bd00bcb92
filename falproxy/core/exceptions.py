"""Core exceptions for the proxy."""


class ProxyError(Exception):
    """Base exception for proxy errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(ProxyError):
    """Raised when there's an issue with the configuration."""
    pass


class InvalidRequestError(ProxyError):
    """Raised when an incoming request is invalid."""

    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(message)
        self.code = code


class BackendError(ProxyError):
    """Raised when the fal backend cannot be reached or answers garbage."""
    pass
