"""Logging setup: colourised console lines or JSON lines for Lambda."""

import json
import logging
import sys
from datetime import datetime, timezone

# Fields passed through ``extra=`` that end up as JSON keys
STRUCTURED_FIELDS = (
    'run_id',
    'resource_id',
    'region',
    'action',
    'outcome',
    'reason',
    'page',
    'duration',
)

QUIET_LOGGERS = ('boto3', 'botocore', 'urllib3')


class JSONFormatter(logging.Formatter):
    """One JSON object per record, queryable with CloudWatch Logs Insights."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name)) for name in STRUCTURED_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short coloured lines for interactive use."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        color = self.COLORS.get(record.levelname, '')
        message = record.getMessage()
        # Prefix with the log group when the record carries one
        if hasattr(record, 'resource_id'):
            message = f"[{record.resource_id}] {message}"
        line = f"{when} {color}{record.levelname:8}{self.RESET} {message}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(log_level: str = 'info', json_output: bool = False) -> None:
    """Configure the root logger.

    Console output goes to stderr so rendered results on stdout stay
    machine readable. Lambda invocations use ``json_output``.

    Args:
        log_level: debug, info, warning or error
        json_output: Emit JSON lines on stdout instead of coloured text
    """
    level = getattr(logging, log_level.upper())

    handler = logging.StreamHandler(sys.stdout if json_output else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with ``__name__``."""
    return logging.getLogger(name)
