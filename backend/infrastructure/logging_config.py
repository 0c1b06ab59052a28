"""
Logging setup for the relay.

One stdout handler on the root logger. Every record passes a redaction
filter before formatting, so bearer credentials, provider keys and store
passwords never reach the log stream. Production uses one JSON object per
line, tagged with the service name and environment.
"""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any, Optional

REDACTED = "[REDACTED]"

# (name, pattern, replacement); applied in order
REDACTION_RULES: tuple[tuple[str, re.Pattern, str], ...] = (
    (
        "authorization_header",
        re.compile(r"(authorization[\"']?\s*[:=]\s*[\"']?(?:bearer|basic)\s+)[^\s\"',]+", re.I),
        rf"\1{REDACTED}",
    ),
    # Relay JWTs and Firebase ID tokens both start with a base64url "{"
    (
        "jwt",
        re.compile(r"\beyJ[\w-]*\.[\w-]+\.[\w-]*"),
        REDACTED,
    ),
    (
        "anthropic_key",
        re.compile(r"\bsk-ant-[\w-]{10,}"),
        REDACTED,
    ),
    (
        "url_password",
        re.compile(r"((?:redis|rediss|https?)://[^:/@\s]*:)[^@\s]+(@)"),
        rf"\1{REDACTED}\2",
    ),
    (
        "named_secret",
        re.compile(r"((?:api[_-]?key|secret|password|dsn)[\"']?\s*[:=]\s*[\"']?)[^\s\"',&]+", re.I),
        rf"\1{REDACTED}",
    ),
)

# Request and billing context attached with ``extra=``
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "user_id",
    "event_type",
)

NOISY_LOGGERS = {
    "uvicorn.access": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "anthropic": logging.WARNING,
    "google": logging.WARNING,
    "redis": logging.WARNING,
}


def redact(text: str) -> str:
    for _, pattern, replacement in REDACTION_RULES:
        text = pattern.sub(replacement, text)
    return text


def _scrub(value: Any) -> Any:
    return redact(value) if isinstance(value, str) else value


class SensitiveDataFilter(logging.Filter):
    """Scrubs the message, its arguments and string context fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)

        if isinstance(record.args, dict):
            record.args = {key: _scrub(value) for key, value in record.args.items()}
        elif record.args:
            record.args = tuple(_scrub(arg) for arg in record.args)

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if isinstance(value, str):
                setattr(record, field, redact(value))
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, service: Optional[str] = None, environment: Optional[str] = None):
        super().__init__()
        self.service = service
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service:
            entry["service"] = self.service
        if self.environment:
            entry["environment"] = self.environment
        if record.levelno >= logging.WARNING:
            entry["source"] = f"{record.module}:{record.lineno}"

        entry.update(
            {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}
        )

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = redact(self.formatException(record.exc_info))
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


def setup_logging(
    json_output: bool = False,
    level: str = "INFO",
    service: Optional[str] = None,
    environment: Optional[str] = None,
) -> None:
    """
    Replace the root logger's handlers with a single redacting stdout handler.

    Args:
        json_output: JSON lines when True, a plain text line otherwise
        level: Root log level name; unknown names fall back to INFO
        service: Service name stamped on JSON records
        environment: Deployment environment stamped on JSON records
    """
    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter(service=service, environment=environment))
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    handler.addFilter(SensitiveDataFilter())

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)
