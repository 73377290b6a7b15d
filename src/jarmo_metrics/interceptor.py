"""Connection lifecycle interceptor that reports connect/disconnect metrics."""

import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar, Union

from .clients.udp_client import UDPSender
from .config.settings import (
    ENABLE_ENV_VAR,
    InterceptorConfig,
    enabled_from_env,
    normalize_config,
)
from .connection import Connection


logger = logging.getLogger(__name__)

T = TypeVar('T')


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class ConnectionInterceptor:
    """
    Middleware that records connection metrics and ships them over UDP.

    Call it with ``(connection, proceed)`` for every new connection. When
    enabled it sends a "connect" payload right away and a "disconnect"
    payload carrying the connection duration once the client leaves. The
    ``proceed`` continuation is always called exactly once, synchronously,
    and never waits on network I/O.
    """

    def __init__(
        self,
        config: Union[None, InterceptorConfig, Mapping[str, Any]] = None,
        sender: Optional[UDPSender] = None,
        clock: Optional[Callable[[], int]] = None
    ):
        self.config = normalize_config(config)
        self.sender = sender if sender is not None else UDPSender()
        self.clock = clock or monotonic_ms
        self._disabled_notice_logged = False

        self.stats = {
            "connections_observed": 0,
            "disconnections_observed": 0,
            "payloads_skipped": 0,
            "errors": 0
        }

        logger.info(
            f"ConnectionInterceptor initialized: enabled={self.config.enabled}, "
            f"collector={self.config.host}:{self.config.port}"
        )

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def __call__(self, connection: Connection, proceed: Callable[[], T]) -> T:
        if not self.config.enabled:
            self._log_disabled()
            return proceed()

        try:
            self._observe(connection)
        except Exception as e:
            # The connection proceeds even if the host handle misbehaves
            logger.error(f"Failed to observe connection: {e}", exc_info=True)
            self.stats["errors"] += 1

        return proceed()

    def _log_disabled(self):
        message = (
            f"Connection metrics are disabled by default, enable them by "
            f"setting the {ENABLE_ENV_VAR} environment variable."
        )
        if self._disabled_notice_logged:
            logger.debug(message)
        else:
            logger.info(message)
            self._disabled_notice_logged = True

    def _observe(self, connection: Connection):
        start = self.clock()
        self.stats["connections_observed"] += 1

        payload = self._build(self.config.on_connect, connection, connection.live_count())

        disconnected = False

        def handle_disconnect():
            nonlocal disconnected
            # Hosts are expected to signal once, but a repeat must not resend
            if disconnected:
                return
            disconnected = True
            self.stats["disconnections_observed"] += 1

            duration = max(0, self.clock() - start)
            payload = self._build(
                self.config.on_disconnect, connection, connection.live_count(), duration
            )
            self._transmit(payload)

        # Listen before sending so a failed submit cannot lose the disconnect
        connection.on_disconnect(handle_disconnect)
        self._transmit(payload)

    def _build(self, builder: Callable[..., Any], *args) -> Optional[Dict[str, Any]]:
        try:
            return builder(*args)
        except Exception as e:
            logger.debug(f"Payload builder {builder!r} failed", exc_info=e)
            self.config.on_error(e)
            return None

    def _transmit(self, payload: Optional[Dict[str, Any]]):
        if not payload:
            self.stats["payloads_skipped"] += 1
            return

        try:
            self.sender.send(
                self.config.host, self.config.port, payload, callback=self._report
            )
        except Exception as e:
            # e.g. no running event loop to schedule the send on
            logger.debug(f"Failed to submit payload: {e}", exc_info=e)
            self.stats["errors"] += 1
            self.config.on_error(e)

    def _report(self, error: Optional[BaseException]):
        if error is not None:
            self.config.on_error(error)

    def get_stats(self) -> Dict[str, Any]:
        return {**self.stats, "enabled": self.config.enabled}


def jarmo(
    config: Union[None, InterceptorConfig, Mapping[str, Any]] = None,
    sender: Optional[UDPSender] = None
) -> ConnectionInterceptor:
    """Create an interceptor, falling back to the environment toggle for ``enabled``."""
    if not isinstance(config, InterceptorConfig):
        config = dict(config or {})
        config.setdefault('enabled', enabled_from_env())

    return ConnectionInterceptor(config, sender=sender)
