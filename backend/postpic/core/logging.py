"""Structured logging with correlation IDs.

Every record carries a correlation ID. HTTP requests get one from the
X-Correlation-ID header; the upload pipeline binds the asset ID for the
duration of a run so all tier, poster and subtitle records can be joined.

Pipeline context passed as ``extra`` (``asset_id``, ``tier``, ...) is lifted
into the JSON document, so records can be filtered per asset without parsing
messages.
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# Extra keys promoted to the top level of the JSON document
_PIPELINE_KEYS = ("asset_id", "tier")


def get_correlation_id() -> str:
    """Return the current correlation ID, creating one for unbound contexts."""
    cid = correlation_id_var.get()
    if cid is None:
        cid = str(uuid.uuid4())
        correlation_id_var.set(cid)
    return cid


@contextmanager
def bind_correlation_id(correlation_id: str) -> Iterator[str]:
    """Temporarily bind a correlation ID, restoring the previous one on exit.

    Example:
        with bind_correlation_id(asset.id):
            run_pipeline(asset)
    """
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


class StructuredFormatter(logging.Formatter):
    """One JSON document per record.

    Source location is only attached to warnings and above; stack traces only
    when ``include_stack_trace`` is set.
    """

    def __init__(self, include_stack_trace: bool = True):
        super().__init__()
        self.include_stack_trace = include_stack_trace

    def format(self, record: logging.LogRecord) -> str:
        doc: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key != "correlation_id"
        }
        for key in _PIPELINE_KEYS:
            if key in extra:
                doc[key] = extra.pop(key)
        if extra:
            doc["extra"] = extra

        if record.levelno >= logging.WARNING:
            doc["source"] = f"{record.pathname}:{record.lineno} in {record.funcName}"

        if record.exc_info and record.exc_info[0] is not None:
            doc["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }
            if self.include_stack_trace:
                doc["exception"]["stack_trace"] = self.formatException(record.exc_info)

        return json.dumps(doc, default=str)


class CorrelationIdFilter(logging.Filter):
    """Stamps the current correlation ID on records that lack one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        return True


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_stack_trace: bool = True,
) -> None:
    """Configure the root logger with a single stdout handler.

    Args:
        level: Log level name
        json_format: Emit JSON documents instead of plain text lines
        include_stack_trace: Attach formatted tracebacks to JSON records
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.addFilter(CorrelationIdFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter(include_stack_trace=include_stack_trace))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-7s [%(correlation_id)s] %(name)s: %(message)s"
        ))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for noisy in ("uvicorn.access", "celery", "multipart", "python_multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _log(
    logger: logging.Logger,
    level: int,
    message: str,
    exception: Optional[BaseException] = None,
    **extra: Any,
) -> None:
    extra["correlation_id"] = get_correlation_id()
    logger.log(level, message, exc_info=exception, extra=extra, stacklevel=3)


def log_error(
    logger: logging.Logger,
    message: str,
    exception: Optional[BaseException] = None,
    **extra: Any,
) -> None:
    """Log an error with correlation ID and optional exception.

    Args:
        logger: Logger instance
        message: Error message
        exception: Exception whose traceback is attached
        **extra: Context fields such as asset_id or tier
    """
    _log(logger, logging.ERROR, message, exception, **extra)


def log_warning(logger: logging.Logger, message: str, **extra: Any) -> None:
    _log(logger, logging.WARNING, message, **extra)


def log_info(logger: logging.Logger, message: str, **extra: Any) -> None:
    _log(logger, logging.INFO, message, **extra)
