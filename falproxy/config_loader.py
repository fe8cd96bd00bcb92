"""Configuration loading from YAML files with environment variable support."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values

from .core.backend import DEFAULT_BASE_URL, DEFAULT_ENDPOINT, DEFAULT_TIMEOUT
from .core.exceptions import ConfigurationError
from .messages.prompt_composer import PromptBudgets

logger = logging.getLogger("falproxy")

# Default path to the config file (relative to project root)
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_PROMPT_LIMIT = 4800
DEFAULT_SYSTEM_PROMPT_LIMIT = 4800

# Models fal-ai/any-llm is known to serve; advertised by /v1/models.
DEFAULT_SUPPORTED_MODELS = (
    "anthropic/claude-3.7-sonnet",
    "anthropic/claude-3.5-sonnet",
    "anthropic/claude-3-5-haiku",
    "anthropic/claude-3-haiku",
    "google/gemini-pro-1.5",
    "google/gemini-flash-1.5",
    "google/gemini-flash-1.5-8b",
    "google/gemini-2.0-flash-001",
    "meta-llama/llama-3.2-1b-instruct",
    "meta-llama/llama-3.2-3b-instruct",
    "meta-llama/llama-3.1-8b-instruct",
    "meta-llama/llama-3.1-70b-instruct",
    "openai/gpt-4o-mini",
    "openai/gpt-4o",
    "deepseek/deepseek-r1",
    "meta-llama/llama-4-maverick",
    "meta-llama/llama-4-scout",
)

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class ProxySettings:
    """Immutable process-wide settings, built once at startup."""

    fal_key: str
    budgets: PromptBudgets = field(
        default_factory=lambda: PromptBudgets(
            system_prompt_limit=DEFAULT_SYSTEM_PROMPT_LIMIT,
            prompt_limit=DEFAULT_PROMPT_LIMIT,
        )
    )
    fal_base_url: str = DEFAULT_BASE_URL
    fal_endpoint: str = DEFAULT_ENDPOINT
    fal_timeout: float = DEFAULT_TIMEOUT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    supported_models: tuple[str, ...] = DEFAULT_SUPPORTED_MODELS


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def resolve_env_path(config_path: Path, env_path: str | None = None) -> Path:
    """Resolve the env file path for a config file."""
    if env_path:
        return resolve_config_path(env_path)
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(
    path: str | None = None,
    env_path: str | None = None,
    substitute_env: bool = True,
) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to FALPROXY_CONFIG,
              or configs/config_default.yaml in the project root.
        env_path: Optional .env path override for env substitution.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary.
    """
    if path is None:
        path = os.getenv("FALPROXY_CONFIG") or DEFAULT_CONFIG_PATH

    config_path = resolve_config_path(path)

    logger.info(f"Loading configuration from {config_path}")

    if not config_path.exists():
        logger.error(f"Config file not found: {config_path}")
        raise ConfigurationError(f"Config file not found: {config_path}")

    env_values: dict[str, str] = {}
    if substitute_env:
        env_file = resolve_env_path(config_path, env_path)
        if env_file.exists():
            logger.info(f"Loading environment variables from {env_file}")
            env_values = load_env_values(env_file)

    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if substitute_env:
        data = _substitute_env_vars(data, env_values)

    logger.info(f"Configuration loaded successfully from {config_path}")
    return data


def _substitute_env_vars(
    obj: Any, env_values: Mapping[str, str] | None = None
) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports ``${VAR_NAME}`` and ``$VAR_NAME``. Values from the .env file win
    over the process environment. Unset variables keep their placeholder.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):
        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    f"CONFIG ERROR: Environment variable '${var_name}' is not set! "
                    f"Check your .env file or export it in your shell."
                )
                return match.group(0)
            return value

        return _ENV_PATTERN.sub(replace_var, obj)
    return obj


def _section(config: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    current: Any = config
    for key in keys:
        current = current.get(key) if isinstance(current, Mapping) else None
    return current if isinstance(current, Mapping) else {}


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc
    if number <= 0:
        raise ConfigurationError(f"{name} must be positive, got {number}")
    return number


def build_settings(config: Mapping[str, Any]) -> ProxySettings:
    """Build ProxySettings from a loaded config.

    Environment variables FALPROXY_HOST and FALPROXY_PORT take priority over
    the config file's proxy_settings.server section.

    Raises:
        ConfigurationError: If the fal key is missing or a limit is invalid.
    """
    fal_cfg = _section(config, "fal_settings")
    server_cfg = _section(config, "proxy_settings", "server")
    limits_cfg = _section(config, "proxy_settings", "limits")

    fal_key = str(fal_cfg.get("api_key") or "").strip()
    if not fal_key or _ENV_PATTERN.fullmatch(fal_key):
        raise ConfigurationError("fal API key is not set (fal_settings.api_key / FAL_KEY)")

    budgets = PromptBudgets(
        system_prompt_limit=_positive_int(
            limits_cfg.get("system_prompt_limit", DEFAULT_SYSTEM_PROMPT_LIMIT),
            "system_prompt_limit",
        ),
        prompt_limit=_positive_int(
            limits_cfg.get("prompt_limit", DEFAULT_PROMPT_LIMIT), "prompt_limit"
        ),
    )

    host = os.getenv("FALPROXY_HOST") or str(server_cfg.get("host", DEFAULT_HOST))
    port_value = os.getenv("FALPROXY_PORT") or server_cfg.get("port", DEFAULT_PORT)
    try:
        port = int(port_value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid port {port_value!r}, falling back to {DEFAULT_PORT}")
        port = DEFAULT_PORT

    models = config.get("model_list")
    if isinstance(models, list) and models:
        supported_models = tuple(str(model) for model in models)
    else:
        supported_models = DEFAULT_SUPPORTED_MODELS

    try:
        timeout = float(fal_cfg.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"fal timeout must be a number: {exc}") from exc

    return ProxySettings(
        fal_key=fal_key,
        budgets=budgets,
        fal_base_url=str(fal_cfg.get("base_url") or DEFAULT_BASE_URL),
        fal_endpoint=str(fal_cfg.get("endpoint") or DEFAULT_ENDPOINT),
        fal_timeout=timeout,
        host=host,
        port=port,
        supported_models=supported_models,
    )


def load_settings(path: str | None = None, env_path: str | None = None) -> ProxySettings:
    """Load the config file and build settings from it."""
    return build_settings(load_config(path, env_path))
