"""Structured logging configuration using structlog.

JSON output in production, coloured console output locally. Log events are
scrubbed of personal data before rendering: known-sensitive keys are masked
outright and free-text values are passed through pattern redaction. Caller
speech is treated as sensitive.
"""

import re
import sys
from collections.abc import Mapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

# Keys whose values are never rendered
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "secret",
    "token",
    "api_key",
    "authorization",
    "credentials",
    "email",
    "phone",
    "caller_number",
    "ssn",
    "credit_card",
    "card_number",
    "cvv",
    "pin",
    "access_token",
    "refresh_token",
})

# Keys holding raw caller speech; masked unless logging at debug level
SPEECH_KEYS: frozenset[str] = frozenset({"utterance", "fragment", "raw_input"})

_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "[EMAIL]"),
    (re.compile(r"\d{3}-\d{2}-\d{4}"), "[SSN]"),
    (re.compile(r"(?<!\d)(?:\+?1[\s.-]?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}(?!\d)"), "[PHONE]"),
)

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}


class PIIRedactor:
    """structlog processor that masks personal data in event values."""

    def __init__(self, keep_speech: bool = False) -> None:
        self._keep_speech = keep_speech

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, {k: self._scrub(k, v) for k, v in event_dict.items()})

    def _scrub(self, key: str, value: Any) -> Any:
        lowered = key.lower()
        if lowered in SENSITIVE_KEYS:
            return "[REDACTED]"
        if lowered in SPEECH_KEYS and not self._keep_speech:
            return f"[SPEECH len={len(value)}]" if isinstance(value, str) else "[SPEECH]"
        return self._scrub_value(value)

    def _scrub_value(self, value: Any) -> Any:
        if isinstance(value, str):
            for pattern, label in _PATTERNS:
                value = pattern.sub(label, value)
            return value
        if isinstance(value, Mapping):
            return {k: self._scrub(str(k), v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._scrub_value(item) for item in value]
        return value


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" or "console"
        redact_pii: Mask personal data; caller speech stays visible at DEBUG
    """
    level_num = _LEVELS.get(level.upper(), 20)
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    if redact_pii:
        processors.append(PIIRedactor(keep_speech=level_num <= _LEVELS["DEBUG"]))
    processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def bind_call_context(call_id: str, tenant_id: Any, turn_number: int | None = None) -> None:
    """Attach call identifiers to every log event emitted by this task."""
    structlog.contextvars.bind_contextvars(
        call_id=call_id,
        tenant_id=str(tenant_id),
        turn_number=turn_number,
    )


def clear_call_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger bound to ``name`` (normally the calling module's __name__)."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
