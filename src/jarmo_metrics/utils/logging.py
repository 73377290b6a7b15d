"""Logging setup for the Jarmo metrics service."""

import logging
import json
import sys
from datetime import datetime, timezone

from ..config.settings import LoggingConfig


TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(service)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'service': getattr(record, 'service', None),
            'logger': record.name,
            'message': record.getMessage()
        }
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ServiceContextFilter(logging.Filter):
    """Stamps every record with the service name."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service_name
        return True


def setup_logging(config: LoggingConfig, service_name: str = "jarmo-metrics") -> None:
    """
    Route all logging through one handler described by ``config``.

    Args:
        config: level, ``json`` or ``text`` format, and ``stdout``/``stderr``/file output
        service_name: Added to every record as ``service``
    """
    output = config.output.lower()
    if output in ('stdout', 'stderr'):
        handler = logging.StreamHandler(getattr(sys, output))
    else:
        handler = logging.FileHandler(config.output)

    if config.format.lower() == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler.addFilter(ServiceContextFilter(service_name))

    root_logger = logging.getLogger()
    root_logger.setLevel(config.level.upper())
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Per-frame websockets logging is too chatty for INFO
    logging.getLogger('websockets').setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={config.level}, format={config.format}, "
        f"output={config.output}"
    )
