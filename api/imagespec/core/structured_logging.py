"""Structured JSON logging with security sanitization.

Log records are emitted as JSON objects so they can be shipped to a log
aggregator as-is. In production, string fields are scrubbed of bearer tokens
and API keys before they are written, and tracebacks are left out.
"""

import logging
import re
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from .config import Settings

# Context variables for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


class SecuritySanitizer:
    """Redact the provider credential from log fields.

    Catches OpenAI-style ``sk-`` keys and bearer tokens inside strings, and
    replaces the whole value of credential-named fields.
    """

    REDACTED = "***REDACTED***"
    SECRET_PATTERNS = (
        re.compile(r'(sk-)[A-Za-z0-9_-]{16,}'),
        re.compile(r'(bearer\s+)[A-Za-z0-9_.-]{16,}', re.IGNORECASE),
    )
    SECRET_FIELDS = ("authorization", "api_key", "openai_api_key", "x-api-key")

    @classmethod
    def sanitize_string(cls, text: Any) -> str:
        sanitized = text if isinstance(text, str) else str(text)
        for pattern in cls.SECRET_PATTERNS:
            sanitized = pattern.sub(r'\1' + cls.REDACTED, sanitized)
        return sanitized

    @classmethod
    def sanitize(cls, value: Any) -> Any:
        """Redact ``value``, walking into dicts and lists."""
        if isinstance(value, str):
            return cls.sanitize_string(value)
        if isinstance(value, dict):
            return {
                key: cls.REDACTED if str(key).lower() in cls.SECRET_FIELDS else cls.sanitize(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [cls.sanitize(item) for item in value]
        return value


class StructuredFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps service metadata on every record."""

    def __init__(self, *args, service_name: str = "imagespec-api", service_env: str = "dev", **kwargs):
        super().__init__(*args, **kwargs)
        self.service_name = service_name
        self.service_env = service_env

    @property
    def is_production(self) -> bool:
        return self.service_env in ["prod", "production"]

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno
        log_record['service'] = self.service_name
        log_record['environment'] = self.service_env

        if request_id := request_id_var.get():
            log_record['request_id'] = request_id

        if record.exc_info and record.exc_info[0] is not None:
            exception_info = {
                'type': record.exc_info[0].__name__,
                'message': SecuritySanitizer.sanitize_string(str(record.exc_info[1])),
            }
            # Tracebacks only outside production
            if not self.is_production:
                exception_info['traceback'] = traceback.format_exception(*record.exc_info)
            log_record['exception'] = exception_info
            log_record.pop('exc_info', None)

        if self.is_production:
            log_record.update(SecuritySanitizer.sanitize(dict(log_record)))


def setup_logging(settings: Settings) -> None:
    """Install the JSON handler on the root logger."""
    root = logging.getLogger()
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        StructuredFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            service_name=settings.service_name,
            service_env=settings.service_env,
        )
    )
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    if settings.is_production:
        logging.getLogger('httpx').setLevel(logging.WARNING)
        logging.getLogger('httpcore').setLevel(logging.WARNING)


def log_external_call(logger: logging.Logger, service: str, operation: str, **kwargs):
    """Log external service call."""
    logger.info(
        f"External call to {service}: {operation}",
        extra={
            "external_service": service,
            "operation": operation,
            "event_type": "external_call",
            **kwargs,
        },
    )
