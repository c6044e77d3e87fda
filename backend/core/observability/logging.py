"""JSON structured logging with mandatory fields and PII/key redaction."""
import json
import logging
import re
import sys
import threading
from datetime import datetime, timezone
from typing import Optional

from backend.core.config import settings

# Thread-local storage for context
_context = threading.local()

_RESERVED_ATTRS = frozenset(
    (
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
        'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
        'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
        'processName', 'process', 'message', 'taskName',
    )
)


class JSONFormatter(logging.Formatter):
    """JSON formatter with mandatory fields and redaction."""

    def __init__(self):
        super().__init__()
        # PEM blocks (keys, certificates) never reach the log sink
        self.pem_pattern = re.compile(
            r'-----BEGIN ([A-Z0-9 ]+)-----[\s\S]*?-----END \1-----'
        )
        self.iban_pattern = re.compile(r'\b([A-Z]{2}\d{2}[A-Z0-9]{11,30})\b')
        self.email_pattern = re.compile(r'(\b\S+@\S+\.\S+\b)')

    def _redact(self, text: str) -> str:
        if not isinstance(text, str):
            return text
        text = self.pem_pattern.sub(lambda m: f'[{m.group(1)} REDACTED]', text)
        text = self.iban_pattern.sub(self._mask_iban, text)
        text = self.email_pattern.sub(self._mask_email, text)
        return text

    def _mask_iban(self, match) -> str:
        """Mask IBAN: keep country code, mask the rest."""
        iban = match.group(1)
        return iban[:2] + "*" * (len(iban) - 2)

    def _mask_email(self, match) -> str:
        """Mask email: show first char of user, keep domain."""
        email = match.group(1)
        if "@" not in email:
            return email
        user, domain = email.split("@", 1)
        masked_user = "*" if len(user) <= 1 else user[0] + "*" * (len(user) - 1)
        return f"{masked_user}@{domain}"

    def format(self, record):
        """Format log record as JSON with mandatory fields and redaction."""
        trace_id = getattr(_context, 'trace_id', None) or 'unknown'
        tenant_id = getattr(_context, 'tenant_id', None) or 'unknown'
        request_id = getattr(_context, 'request_id', None)

        log_entry = {
            'trace_id': trace_id,
            'tenant_id': tenant_id,
            'level': record.levelname.lower(),
            'logger': record.name,
            'msg': self._redact(record.getMessage()),
            'ts_utc': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        }

        if request_id:
            log_entry['request_id'] = request_id

        if record.exc_info:
            log_entry['exc_info'] = self._redact(self.formatException(record.exc_info))

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith('_'):
                continue
            if isinstance(value, str):
                value = self._redact(value)
            log_entry[key] = value

        return json.dumps(log_entry, default=str)


def set_trace_id(trace_id: Optional[str]) -> None:
    """Set trace ID for current thread context."""
    _context.trace_id = trace_id


def set_tenant_id(tenant_id: Optional[str]) -> None:
    """Set tenant ID for current thread context."""
    _context.tenant_id = tenant_id


def set_request_id(request_id: Optional[str]) -> None:
    """Set request ID for current thread context."""
    _context.request_id = request_id


def init_logging() -> None:
    """Initialize JSON logging on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get logger with JSON formatting."""
    return logging.getLogger(name)


# Convenience logger
logger = get_logger(__name__)
