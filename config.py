"""Configuration constants and site config loading for the Lime server."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

SERVER_NAME: str = "Lime/0.1"
DEFAULT_CONFIG_PATH: str = "lime.toml"

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 3000
DEFAULT_PAGES_DIR: str = "./pages"
DEFAULT_STATIC_DIR: str = "./static"

BUFFER_SIZE: int = 4096
SOCKET_TIMEOUT_SECS: int = 5
KEEPALIVE_TIMEOUT_SECS: int = 5
MAX_KEEPALIVE_REQUESTS: int = 100
MAX_REQUEST_BYTES: int = 1_048_576
MAX_HEADER_BYTES: int = 16_384
MAX_BODY_BYTES: int = 65_536
MAX_TARGET_LENGTH: int = 2048
WORKER_COUNT: int = 8
REQUEST_QUEUE_SIZE: int = 64
LOG_FORMAT: str = "plain"


class ConfigError(ValueError):
    """Raised when a config file exists but cannot be used."""


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    pages_dir: str = DEFAULT_PAGES_DIR
    static_dir: str = DEFAULT_STATIC_DIR
    is_default: bool = False

    def __post_init__(self) -> None:
        if not self.host:
            raise ConfigError("host cannot be empty")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port out of range: {self.port}")
        if not self.pages_dir:
            raise ConfigError("pages_dir cannot be empty")
        if not self.static_dir:
            raise ConfigError("static_dir cannot be empty")

    @property
    def pages_root(self) -> Path:
        return Path(self.pages_dir)

    @property
    def static_root(self) -> Path:
        return Path(self.static_dir)


_FIELD_TYPES: dict[str, type] = {
    "host": str,
    "port": int,
    "pages_dir": str,
    "static_dir": str,
}


def config_from_mapping(data: Mapping[str, Any], *, source: str = "<mapping>") -> ServerConfig:
    """Merge recognized keys from ``data`` over the built-in defaults.

    Unknown keys are ignored. A recognized key with a value of the wrong type
    raises ConfigError.
    """
    overrides: dict[str, Any] = {}
    for name, expected_type in _FIELD_TYPES.items():
        if name not in data:
            continue
        value = data[name]
        # bool is an int subclass; `port = true` is still a mistake
        if isinstance(value, bool) or not isinstance(value, expected_type):
            raise ConfigError(
                f"{source}: '{name}' must be {expected_type.__name__}, "
                f"got {type(value).__name__}"
            )
        overrides[name] = value

    port = overrides.get("port")
    if port is not None and not 1 <= port <= 65535:
        raise ConfigError(f"{source}: 'port' must be between 1 and 65535, got {port}")

    try:
        return ServerConfig(**overrides)
    except ConfigError as exc:
        raise ConfigError(f"{source}: {exc}") from exc


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> ServerConfig:
    """Load a ServerConfig from a TOML file, falling back to defaults.

    A missing file is not an error: the defaults are returned with
    ``is_default`` set so callers can tell nothing was loaded.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_bytes()
    except FileNotFoundError:
        return ServerConfig(is_default=True)
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {config_path}: {exc}") from exc

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse config file {config_path}: {exc}") from exc

    return config_from_mapping(data, source=str(config_path))

