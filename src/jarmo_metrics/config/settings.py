"""Configuration settings for the Jarmo connection metrics interceptor."""

import logging
import os
import yaml
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ..payloads import default_connect, default_disconnect, default_error


logger = logging.getLogger(__name__)

ENABLE_ENV_VAR = "JARMO_ENABLE"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8000

_TRUTHY = {"1", "true", "yes", "on"}


def parse_bool(value: Any) -> bool:
    """Interpret a boolean-like config or environment value."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


def enabled_from_env(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Read the process-wide enable toggle. Absent means disabled."""
    environ = os.environ if environ is None else environ
    return parse_bool(environ.get(ENABLE_ENV_VAR))


@dataclass(frozen=True)
class InterceptorConfig:
    """Fully populated interceptor configuration."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    enabled: bool = False
    on_error: Callable[[BaseException], Any] = default_error
    on_connect: Callable[..., Any] = default_connect
    on_disconnect: Callable[..., Any] = default_disconnect


_FIELD_NAMES = {f.name for f in fields(InterceptorConfig)}


def normalize_config(
    config: Union[None, InterceptorConfig, Mapping[str, Any]] = None
) -> InterceptorConfig:
    """
    Build a complete InterceptorConfig from a partial one.

    Absent or falsy fields fall back to their defaults; nothing is rejected.

    Args:
        config: None, a mapping of field overrides, or an InterceptorConfig

    Returns:
        InterceptorConfig with every field populated
    """
    if isinstance(config, InterceptorConfig):
        config = {f: getattr(config, f) for f in _FIELD_NAMES}
    config = dict(config or {})

    unknown = set(config) - _FIELD_NAMES
    if unknown:
        logger.warning(f"Ignoring unknown interceptor config keys: {sorted(unknown)}")

    return InterceptorConfig(
        host=config.get('host') or DEFAULT_HOST,
        port=int(config.get('port') or DEFAULT_PORT),
        enabled=parse_bool(config.get('enabled')),
        on_error=config.get('on_error') or default_error,
        on_connect=config.get('on_connect') or default_connect,
        on_disconnect=config.get('on_disconnect') or default_disconnect
    )


@dataclass
class CollectorConfig:
    """Remote Jarmo collector configuration."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    enabled: bool = False

    def __post_init__(self):
        # Values substituted from the environment arrive as strings
        self.port = int(self.port or DEFAULT_PORT)
        self.enabled = parse_bool(self.enabled)


@dataclass
class ServerConfig:
    """Websocket server configuration."""
    host: str = "0.0.0.0"
    port: int = 8765

    def __post_init__(self):
        self.port = int(self.port)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "text"
    output: str = "stdout"


@dataclass
class JarmoConfig:
    """Main configuration for the instrumented websocket service."""
    collector: CollectorConfig
    server: ServerConfig
    logging: LoggingConfig

    def to_interceptor_config(self) -> InterceptorConfig:
        return normalize_config({
            'host': self.collector.host,
            'port': self.collector.port,
            'enabled': self.collector.enabled
        })


def load_config(config_file: str) -> JarmoConfig:
    """Load configuration from YAML file."""

    # Load YAML file
    with open(config_file, 'r') as f:
        config_data = yaml.safe_load(f) or {}

    # Environment variable substitution
    config_data = _substitute_env_vars(config_data)

    return JarmoConfig(
        collector=CollectorConfig(**config_data.get('collector', {})),
        server=ServerConfig(**config_data.get('server', {})),
        logging=LoggingConfig(**config_data.get('logging', {}))
    )


def _substitute_env_vars(data):
    """Recursively substitute environment variables in configuration."""
    if isinstance(data, dict):
        return {key: _substitute_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    elif isinstance(data, str) and data.startswith('${') and data.endswith('}'):
        # Extract environment variable name and default value
        env_spec = data[2:-1]

        if ':' in env_spec:
            env_name, default_value = env_spec.split(':', 1)
        else:
            env_name, default_value = env_spec, None

        return os.getenv(env_name, default_value)
    else:
        return data
