# remote_executor/config.py
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger("remote_executor.config")

CONFIG_ENV = "REMOTE_EXECUTOR_CONFIG"
ENV_PREFIX = "REMOTE_EXECUTOR_"
DEFAULT_CONFIG_FILE = "config.json"

# config.json key -> GatewayConfig field
_KEYS = {
    "SECRET_TOKEN": "secret_token",
    "PORT": "port",
    "BASE_DIR": "base_dir",
    "HOST": "host",
    "ALLOW_SHELL": "allow_shell",
    "MAX_BODY_BYTES": "max_body_bytes",
}


class GatewayConfig(BaseModel):
    """Immutable process configuration, built once at startup."""

    model_config = ConfigDict(frozen=True)

    secret_token: str = Field(min_length=1)
    base_dir: Path
    port: int = Field(default=3000, ge=1, le=65535)
    host: str = "127.0.0.1"
    allow_shell: bool = True
    max_body_bytes: int = Field(default=50 * 1024 * 1024, gt=0)

    @field_validator("base_dir")
    @classmethod
    def _absolute(cls, v: Path) -> Path:
        return v.expanduser().resolve()


def _read_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read or parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return data


def load_config(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> GatewayConfig:
    """Load config.json (or `path`) and apply REMOTE_EXECUTOR_* env overrides.

    A relative BASE_DIR is taken relative to the config file's directory.
    Raises ConfigError when SECRET_TOKEN or BASE_DIR is missing or anything
    fails validation.
    """
    env = os.environ if env is None else env
    explicit = path or env.get(CONFIG_ENV)
    config_path = Path(explicit or DEFAULT_CONFIG_FILE)

    raw: Dict[str, Any] = {}
    anchor = Path.cwd()
    if config_path.is_file():
        raw = _read_file(config_path)
        anchor = config_path.resolve().parent
    elif explicit:
        raise ConfigError(f"Config file not found: {config_path}")

    values: Dict[str, Any] = {}
    for key, field in _KEYS.items():
        if f"{ENV_PREFIX}{key}" in env:
            values[field] = env[f"{ENV_PREFIX}{key}"]
        elif raw.get(key) is not None:
            values[field] = raw[key]

    if not values.get("secret_token") or not values.get("base_dir"):
        raise ConfigError("SECRET_TOKEN and BASE_DIR must be set in config.json.")

    base_dir = Path(str(values["base_dir"])).expanduser()
    if not base_dir.is_absolute():
        base_dir = anchor / base_dir
    values["base_dir"] = base_dir

    try:
        return GatewayConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def ensure_base_dir(config: GatewayConfig) -> Path:
    if not config.base_dir.exists():
        try:
            config.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Could not create base directory {config.base_dir}: {e}") from e
        logger.info(f"Base directory created at: {config.base_dir}")
    elif not config.base_dir.is_dir():
        raise ConfigError(f"BASE_DIR is not a directory: {config.base_dir}")
    return config.base_dir
