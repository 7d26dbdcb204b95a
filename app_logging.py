"""Structured JSON logging for the Lambda handlers and the reminder worker."""
import json
import logging
from typing import Optional

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED = frozenset(
    vars(logging.LogRecord('', logging.INFO, '', 0, '', None, None))
) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON line, `extra` fields included."""

    def __init__(self, service: Optional[str] = None):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }
        if self.service:
            entry['service'] = self.service

        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RESERVED and key not in entry
        )

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(log_level: str = 'INFO', service: Optional[str] = None) -> None:
    """
    Send all records to stderr through one JSON handler.

    Handlers installed by an earlier call (or by the Lambda runtime) are
    replaced, so warm invocations keep a single handler.

    Args:
        log_level: Logging level name; unknown names fall back to INFO
        service: Name of the entry point, added to every line
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(service))
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
