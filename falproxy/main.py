"""Main FastAPI application for the fal proxy.

Loads configuration at import time; use ``app`` with uvicorn.
"""

from .app import create_app
from .config_loader import load_settings
from .logging import setup_logging

# Initialize logging
logger = setup_logging()

# Load configuration
settings = load_settings()
SERVER_HOST = settings.host
SERVER_PORT = settings.port

app = create_app(settings)

__all__ = ["app", "settings", "SERVER_HOST", "SERVER_PORT"]
