"""
JSON structured logging.

Every record is printed to stdout as one logstash compatible event so the
service's output can be shipped without extra parsing.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .config import LoggerParams
from .core.errors import ValidationError


TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

# Level values used by the log aggregation side
LEVEL_VALUES = {
    TRACE: 5000,
    logging.DEBUG: 10000,
    logging.INFO: 20000,
    logging.WARNING: 30000,
    logging.ERROR: 40000,
    logging.CRITICAL: 50000,
}


class JsonFormatter(logging.Formatter):
    """Render records as logstash style JSON events."""

    def __init__(self, service_name: str = 'nerd', artifact_id: str = 'nerd'):
        super().__init__()
        self.service_name = service_name
        self.artifact_id = artifact_id

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event = {
            '@timestamp': timestamp.isoformat(timespec='milliseconds'),
            '@version': '1',
            'log_type': 'LOG',
            'log_level': record.levelname,
            'level_value': LEVEL_VALUES.get(record.levelno, record.levelno * 1000),
            'service_name': self.service_name,
            'logger_name': record.name,
            'artifact_id': self.artifact_id,
            'message': record.getMessage(),
        }
        if record.exc_info:
            event['exception'] = self.formatException(record.exc_info)
        return json.dumps(event)


def parse_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValidationError(f"unknown log level {name!r}")
    return level


def setup_logging(params: LoggerParams) -> logging.Logger:
    """Send the nerd loggers to stdout as JSON at the configured level."""
    logger = logging.getLogger('nerd')
    logger.setLevel(parse_level(params.level))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(params.service_name, params.artifact_id))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
