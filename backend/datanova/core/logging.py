"""
Structured logging for the DataNova workflow.

Every record carries a correlation id. Records emitted while serving a request
get the id stamped by CorrelationIDMiddleware; records from outside a request
(startup, session restore from storage) get NO_REQUEST_ID.
"""
import os
import sys
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

NO_REQUEST_ID = "system"
SERVICE_NAME = "datanova-workflow"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "PIL")

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'thread', 'threadName',
    'exc_info', 'exc_text', 'message', 'correlation_id', 'taskName',
))


def _correlation_id(record: logging.LogRecord) -> str:
    return getattr(record, 'correlation_id', None) or NO_REQUEST_ID


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Extras passed to the logging call (metric, duration, method, path,
    status_code, ...) are copied to top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "correlation_id": _correlation_id(record),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line format for local runs."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s %(levelname)-7s %(name)s [%(correlation_id)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = _correlation_id(record)
        return super().format(record)


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Install one stdout handler on the root logger.

    log_format is 'json' or 'text' and defaults to the LOG_FORMAT env var
    ('text' when unset); log_level defaults to LOG_LEVEL.
    """
    log_format = (log_format or os.getenv('LOG_FORMAT', 'text')).lower()
    log_level = (log_level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if log_format == 'json' else TextFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug(f"Logging configured ({log_format}, {log_level})")
