"""Models listing endpoint - OpenAI compatible."""

import logging

from fastapi import Request

logger = logging.getLogger("falproxy")

# Fixed creation timestamp reported for every fal model.
MODEL_CREATED = 1700000000


def model_owner(model_id: str) -> str:
    """Owner is the provider prefix of a fal model id, e.g. "openai/gpt-4o"."""
    if model_id and "/" in model_id:
        return model_id.split("/")[0]
    return "fal-ai"


async def list_models(request: Request) -> dict:
    """List advertised models in OpenAI API format.

    GET /v1/models
    """
    logger.info("Handling GET /v1/models request")
    settings = request.app.state.settings
    models = [
        {
            "id": model_id,
            "object": "model",
            "created": MODEL_CREATED,
            "owned_by": model_owner(model_id),
        }
        for model_id in settings.supported_models
    ]
    return {"object": "list", "data": models}
