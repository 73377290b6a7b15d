"""
Jarmo Metrics - connection lifecycle metrics for websocket servers.

Reports connection counts and connection durations to a Jarmo collector as
fire-and-forget UDP datagrams.
"""

from .clients.udp_client import UDPSender
from .config.settings import InterceptorConfig, normalize_config
from .connection import Connection
from .interceptor import ConnectionInterceptor, jarmo

__version__ = "1.0.0"

__all__ = [
    "Connection",
    "ConnectionInterceptor",
    "InterceptorConfig",
    "UDPSender",
    "jarmo",
    "normalize_config",
]
