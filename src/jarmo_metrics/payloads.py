"""Default payload builders and error handler for the connection interceptor."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict


logger = logging.getLogger(__name__)


def default_error(error: BaseException) -> None:
    """Log a failed datagram send. Never raises."""
    timestamp = datetime.now(timezone.utc).isoformat()
    logger.error(f"[ {timestamp} ] Failed to send UDP packet(s), {error}")


def default_connect(connection, live_count: int) -> Dict[str, Any]:
    """Payload sent to the collector when a client connects."""
    return {
        'name': 'connections',
        'total_connections': live_count
    }


def default_disconnect(connection, live_count: int, duration_ms: int) -> Dict[str, Any]:
    """Payload sent to the collector when a client disconnects."""
    return {
        'total_connections': live_count,
        'connection_duration': duration_ms
    }
