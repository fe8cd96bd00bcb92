"""FastAPI application factory for the fal proxy."""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import chat_completions, list_models, root
from .config_loader import ProxySettings
from .core import FalBackend

logger = logging.getLogger("falproxy")


def build_backend(settings: ProxySettings) -> FalBackend:
    return FalBackend(
        api_key=settings.fal_key,
        base_url=settings.fal_base_url,
        endpoint=settings.fal_endpoint,
        timeout=settings.fal_timeout,
    )


def create_app(settings: ProxySettings, backend: Optional[FalBackend] = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Immutable proxy settings, stored on ``app.state.settings``.
        backend: fal client to use; built from settings when omitted.

    Returns:
        The configured FastAPI application instance.
    """
    app = FastAPI(title="Fal OpenAI Proxy")
    app.state.settings = settings
    app.state.backend = backend or build_backend(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    @app.on_event("startup")
    async def startup_event():
        """Log the effective configuration."""
        logger.info("===================================================")
        logger.info(" Fal OpenAI Proxy Server (System Top + Separator + Recency)")
        logger.info(" Listening on: %s:%s", settings.host, settings.port)
        logger.info(
            " Using Limits: System Prompt=%s, Prompt=%s",
            settings.budgets.system_prompt_limit,
            settings.budgets.prompt_limit,
        )
        logger.info(" Fal AI Key Loaded: %s", "Yes" if settings.fal_key else "No")
        logger.info(" Fal endpoint: %s", app.state.backend.build_url())
        logger.info(" Chat Completions Endpoint: POST /v1/chat/completions")
        logger.info(" Models Endpoint: GET /v1/models")
        logger.info("===================================================")

    app.get("/")(root)
    app.get("/v1/models")(list_models)
    app.post("/v1/chat/completions")(chat_completions)
    logger.info("FastAPI application created")
    return app
