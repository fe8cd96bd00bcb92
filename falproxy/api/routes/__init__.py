"""API routes for the proxy."""

from .chat import chat_completions
from .models import list_models
from .root import root

__all__ = [
    "chat_completions",
    "list_models",
    "root",
]
