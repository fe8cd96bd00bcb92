"""falproxy - OpenAI-compatible proxy for fal-ai/any-llm

Accepts OpenAI chat completion requests, flattens the messages into fal's
length-limited prompt/system_prompt pair, and translates the results back,
including incremental streaming chunks rebuilt from fal's cumulative output.

Example:
    >>> from falproxy.main import app
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=3000)
"""

from .app import create_app
from .config_loader import ProxySettings, build_settings, load_config, load_settings
from .core import FalBackend
from .logging import logger, setup_logging
from .messages import ComposedPrompt, PromptBudgets, compose_prompt, reconstruct

__all__ = [
    "ComposedPrompt",
    "FalBackend",
    "PromptBudgets",
    "ProxySettings",
    "build_settings",
    "compose_prompt",
    "create_app",
    "load_config",
    "load_settings",
    "logger",
    "reconstruct",
    "setup_logging",
]
