"""Configuration for the Jarmo connection metrics interceptor."""

from .settings import (
    InterceptorConfig,
    JarmoConfig,
    enabled_from_env,
    load_config,
    normalize_config,
)

__all__ = [
    "InterceptorConfig",
    "JarmoConfig",
    "enabled_from_env",
    "load_config",
    "normalize_config",
]
