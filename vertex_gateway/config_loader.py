"""Configuration loading from YAML files and environment variables."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("vertex-gateway")

# Default path to the config file (relative to project root)
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"
CONFIG_PATH_ENV = "VERTEX_GATEWAY_CONFIG"

DEFAULT_ALLOWED_MODELS = [
    "claude-opus-4-6",
    "claude-opus-4-5@20251101",
    "claude-opus-4@20250514",
    "claude-sonnet-4-5@20250929",
    "claude-sonnet-4@20250514",
    "claude-3-7-sonnet@20250219",
    "claude-haiku-4-5@20251001",
    "claude-3-5-haiku@20241022",
    "claude-3-haiku@20240307",
]
DEFAULT_LOCATION = "global"
DEFAULT_ANTHROPIC_VERSION = "vertex-2023-10-16"
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TIMEOUT = 300.0

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class GatewaySettings:
    """Resolved gateway configuration."""

    project_id: Optional[str] = None
    location: str = DEFAULT_LOCATION
    client_email: Optional[str] = None
    private_key: Optional[str] = None
    anthropic_version: str = DEFAULT_ANTHROPIC_VERSION
    allowed_models: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_MODELS))
    default_model: Optional[str] = None
    default_max_tokens: int = DEFAULT_MAX_TOKENS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False
    proxy_api_key: Optional[str] = None

    def __post_init__(self) -> None:
        if self.default_model is None and self.allowed_models:
            self.default_model = self.allowed_models[0]

    def missing(self, require_credentials: bool = True) -> list[str]:
        """Return the names of required settings that are not set."""
        missing: list[str] = []
        if not self.project_id:
            missing.append("VERTEX_PROJECT_ID")
        if not self.location:
            missing.append("VERTEX_LOCATION")
        if require_credentials:
            if not self.client_email:
                missing.append("VERTEX_CLIENT_EMAIL")
            if not self.private_key:
                missing.append("VERTEX_PRIVATE_KEY")
        if not self.default_model:
            missing.append("VERTEX_DEFAULT_MODEL or VERTEX_ALLOWED_MODELS")
        return missing


def assert_settings(settings: GatewaySettings, require_credentials: bool = True) -> None:
    """Raise ``ConfigurationError`` naming every missing required setting."""
    missing = settings.missing(require_credentials)
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )


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


def _substitute_env_vars(
    obj: Any, env_values: Mapping[str, str] | None = None
) -> Any:
    """Recursively substitute ``${VAR}`` and ``$VAR`` in configuration values.

    Unset variables keep their literal placeholder and are logged.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):

        def replace_var(match: re.Match) -> str:
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    f"CONFIG ERROR: Environment variable '${var_name}' is not set! "
                    f"The literal placeholder will be used."
                )
                return match.group(0)
            return value

        return _ENV_PATTERN.sub(replace_var, obj)
    return obj


def parse_model_list(value: Any, fallback: list[str]) -> list[str]:
    """Parse a comma separated (or YAML list) model allow-list."""
    if not value:
        return list(fallback)
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [str(item) for item in value]
    else:
        return list(fallback)
    models = [item.strip() for item in items if item and item.strip()]
    return models or list(fallback)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _unescape_private_key(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.replace("\\n", "\n")


def load_yaml_config(
    path: str | None = None,
    env_path: str | None = None,
    substitute_env: bool = True,
) -> dict:
    """Load the optional YAML configuration file.

    Args:
        path: Path to the config file. Defaults to ``VERTEX_GATEWAY_CONFIG``,
              or configs/config_default.yaml in the project root.
        env_path: Optional .env path override for env substitution.
        substitute_env: Whether to substitute environment variables.

    Returns:
        Parsed configuration dictionary (empty when no default file exists).

    Raises:
        RuntimeError: If an explicitly requested file does not exist.
    """
    explicit = path is not None or os.getenv(CONFIG_PATH_ENV) is not None
    config_path = resolve_config_path(path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        if explicit:
            logger.error(f"Config file not found: {config_path}")
            raise RuntimeError(f"Config file not found: {config_path}")
        logger.info("No config file at %s, using environment only", config_path)
        return {}

    logger.info(f"Loading configuration from {config_path}")

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

    return data


def load_config(
    path: str | None = None,
    env_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> GatewaySettings:
    """Build gateway settings from the YAML file overlaid with environment variables.

    Environment variables (``VERTEX_*``, ``PORT``, ``DEBUG``, ``PROXY_API_KEY``)
    take priority over the file.
    """
    data = load_yaml_config(path, env_path)
    vertex_cfg = data.get("vertex") or {}
    server_cfg = data.get("server") or {}
    env = os.environ if environ is None else environ

    def pick(env_name: str, section: Mapping[str, Any], key: str) -> Any:
        value = env.get(env_name)
        if value not in (None, ""):
            return value
        return section.get(key)

    allowed_models = parse_model_list(
        pick("VERTEX_ALLOWED_MODELS", vertex_cfg, "allowed_models"),
        DEFAULT_ALLOWED_MODELS,
    )
    default_model = pick("VERTEX_DEFAULT_MODEL", vertex_cfg, "default_model") or (
        allowed_models[0] if allowed_models else None
    )
    node_env = env.get("NODE_ENV") or env.get("ENV") or ""

    settings = GatewaySettings(
        project_id=pick("VERTEX_PROJECT_ID", vertex_cfg, "project_id"),
        location=pick("VERTEX_LOCATION", vertex_cfg, "location") or DEFAULT_LOCATION,
        client_email=pick("VERTEX_CLIENT_EMAIL", vertex_cfg, "client_email"),
        private_key=_unescape_private_key(pick("VERTEX_PRIVATE_KEY", vertex_cfg, "private_key")),
        anthropic_version=(
            pick("VERTEX_ANTHROPIC_VERSION", vertex_cfg, "anthropic_version")
            or DEFAULT_ANTHROPIC_VERSION
        ),
        allowed_models=allowed_models,
        default_model=default_model,
        default_max_tokens=_parse_int(
            pick("VERTEX_DEFAULT_MAX_TOKENS", vertex_cfg, "default_max_tokens"),
            DEFAULT_MAX_TOKENS,
        ),
        host=str(pick("HOST", server_cfg, "host") or DEFAULT_HOST),
        port=_parse_int(pick("PORT", server_cfg, "port"), DEFAULT_PORT),
        timeout=_parse_float(pick("VERTEX_TIMEOUT", vertex_cfg, "timeout"), DEFAULT_TIMEOUT),
        debug=_parse_bool(pick("DEBUG", server_cfg, "debug")) or node_env == "development",
        proxy_api_key=pick("PROXY_API_KEY", server_cfg, "proxy_api_key") or None,
    )
    logger.info(
        "Configuration loaded: location=%s, default_model=%s, %d allowed models",
        settings.location,
        settings.default_model,
        len(settings.allowed_models),
    )
    return settings
