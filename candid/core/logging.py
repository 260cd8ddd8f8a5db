"""Structured logging for Candid.

Events go through structlog and end up in stdlib logging handlers, so
third-party log records share one format. Rendering is JSON when stderr is
not a terminal and colored key/value output otherwise.

Every event passes through two Candid processors: fields bound with
``bind_context`` (job_id, evaluator_id) are merged in, and values are
scrubbed. Keys that look like credentials are replaced with ``[REDACTED]``,
and evaluator e-mail addresses keep only their first character.

    configure_logging()
    logger = get_logger(__name__)

    with bind_context(job_id="job-42"):
        logger.info("weights_finalized", normalized=False)
"""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_log_fields: ContextVar[dict[str, Any]] = ContextVar("log_fields", default={})

SENSITIVE_KEY_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "credential",
    }
)

EMAIL_RE = re.compile(
    r"\b([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b"
)


def mask_email(text: str) -> str:
    """Mask the local part of every e-mail address in ``text``.

    ``john.smith@candidai.com`` becomes ``j***@candidai.com``.
    """
    return EMAIL_RE.sub(r"\1***@\2", text)


class bind_context:
    """Context manager to bind additional fields to log events.

    Example:
        with bind_context(job_id="123"):
            logger.info("finalized")  # Includes job_id
    """

    def __init__(self, **kwargs: Any) -> None:
        self.ctx = kwargs
        self._token: Any = None

    def __enter__(self) -> "bind_context":
        new_context = {**_log_fields.get(), **self.ctx}
        self._token = _log_fields.set(new_context)
        return self

    def __exit__(self, *args: Any) -> None:
        _log_fields.reset(self._token)


def get_log_fields() -> dict[str, Any]:
    """Return a copy of the fields currently bound to log events."""
    return dict(_log_fields.get())


def add_log_fields(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Merge fields bound with bind_context into the event."""
    for key, value in _log_fields.get().items():
        event_dict.setdefault(key, value)
    return event_dict


def _is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in SENSITIVE_KEY_PATTERNS)


def _redact_value(key: str, value: Any) -> Any:
    if _is_sensitive_key(key):
        return "[REDACTED]"
    if isinstance(value, str):
        return mask_email(value)
    if isinstance(value, dict):
        return {k: _redact_value(str(k), v) for k, v in value.items()}
    return value


def redact_sensitive_data(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact secrets by key name and mask e-mail addresses in string values."""
    return {key: _redact_value(key, value) for key, value in event_dict.items()}


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_log_fields,
        redact_sensitive_data,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    level: str | int = logging.INFO,
    json_output: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Route structlog and stdlib logging through one formatter.

    Args:
        level: Global log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Use JSON output format. If None, auto-detects:
            True if stderr is not a TTY, False otherwise.
        log_file: Optional file path for log output.
    """
    if json_output is None:
        json_output = not sys.stderr.isatty()

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = _shared_processors()

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if json_output:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stdout carries command output, so logs go to stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def configure_logging_from_settings() -> None:
    """Configure logging from the cached Candid settings."""
    from candid.core.settings import get_cached_settings

    settings = get_cached_settings()

    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        log_file=settings.logging.file,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``.

    Example:
        logger = get_logger(__name__)
        logger.info("evaluator_invited", evaluator_id="e-1")
    """
    return structlog.get_logger(name)


def reset_logging() -> None:
    """Drop handlers, bound fields and structlog configuration.

    Used by tests to get a clean state between cases.
    """
    _log_fields.set({})
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
