"""Opt-in handler for the ``volan`` logger tree: JSON lines or plain text.

Library modules only call ``logging.getLogger(__name__)``; nothing is emitted anywhere until
an application calls ``setup_logging``. With ``redact_values`` on, the ``value`` extra that
rejection events carry is replaced by a marker naming only its type.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import IO, Final

_DEFAULT_LOGGER_NAME: Final[str] = "volan"
_TEXT_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s %(message)s"
_MASKED_EXTRAS: Final[frozenset[str]] = frozenset({"value"})

# Attributes every LogRecord has; anything else arrived through ``extra=``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}

_ACTIVE_HANDLE_LOCK = threading.Lock()
_ACTIVE_HANDLE: StructuredLoggingHandle | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Where and how the ``volan`` logger tree writes."""

    logger_name: str = _DEFAULT_LOGGER_NAME
    level: int | str = "WARNING"
    log_format: str = "json"
    log_path: Path | str | None = None
    stream: IO[str] | None = None
    redact_values: bool = True


def setup_logging(
    observability_config: Mapping[str, object] | None = None,
    *,
    log_path: Path | str | None = None,
    stream: IO[str] | None = None,
    logger_name: str = _DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Configure logging from an ``[observability]`` mapping and return the logger.

    Records go to ``log_path`` when given, otherwise to ``stream`` (stderr by default).
    """

    cfg = dict(observability_config or {})
    handle = setup_structured_logging(
        LoggingConfig(
            logger_name=logger_name,
            level=str(cfg.get("log_level", "WARNING")),
            log_format=str(cfg.get("log_format", "json")),
            log_path=log_path,
            stream=stream,
            redact_values=bool(cfg.get("redact_values", True)),
        )
    )
    return handle.logger


class _JsonLineFormatter(logging.Formatter):
    """One sorted JSON object per record; extras are nested under ``fields``."""

    def __init__(self, *, redact_values: bool) -> None:
        super().__init__()
        self._redact_values = redact_values

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        fields = {
            key: self._field(key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }
        if fields:
            event["fields"] = fields
        if record.exc_info is not None:
            event["exception"] = self.formatException(record.exc_info)

        return json.dumps(
            event, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=repr
        )

    def _field(self, key: str, value: object) -> object:
        if self._redact_values and key in _MASKED_EXTRAS:
            return f"<redacted {type(value).__name__}>"
        return value


class StructuredLoggingHandle:
    """Installed handler plus the logger state to restore on shutdown."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        handler: logging.Handler,
        previous_level: int,
        previous_propagate: bool,
    ) -> None:
        self.logger = logger
        self._handler = handler
        self._previous_level = previous_level
        self._previous_propagate = previous_propagate
        self._lock = threading.Lock()
        self._is_shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def shutdown(self) -> None:
        with self._lock:
            if self._is_shutdown:
                return
            self._handler.flush()
            self.logger.removeHandler(self._handler)
            self._handler.close()
            self.logger.setLevel(self._previous_level)
            self.logger.propagate = self._previous_propagate
            self._is_shutdown = True


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Replace any active setup with a handler built from ``config``."""

    shutdown_logging()

    logger_name = config.logger_name.strip()
    if not logger_name:
        raise ValueError("logger_name must not be empty")
    level = _parse_log_level(config.level)

    if config.log_format == "text":
        formatter: logging.Formatter = logging.Formatter(_TEXT_FORMAT)
    elif config.log_format == "json":
        formatter = _JsonLineFormatter(redact_values=config.redact_values)
    else:
        raise ValueError(f"unsupported log_format {config.log_format!r}")

    handler: logging.Handler
    if config.log_path is not None:
        log_path = Path(config.log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(config.stream if config.stream is not None else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    handle = StructuredLoggingHandle(
        logger=logger,
        handler=handler,
        previous_level=logger.level,
        previous_propagate=logger.propagate,
    )
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(handler)

    global _ACTIVE_HANDLE
    with _ACTIVE_HANDLE_LOCK:
        _ACTIVE_HANDLE = handle
    return handle


def shutdown_logging(handle: StructuredLoggingHandle | None = None) -> None:
    """Detach the given handle, or the active one, and restore its logger."""

    global _ACTIVE_HANDLE
    resolved = handle if handle is not None else get_active_logging_handle()
    if resolved is None:
        return
    resolved.shutdown()
    with _ACTIVE_HANDLE_LOCK:
        if _ACTIVE_HANDLE is resolved:
            _ACTIVE_HANDLE = None


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _ACTIVE_HANDLE_LOCK:
        return _ACTIVE_HANDLE


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    parsed = logging.getLevelName(value.strip().upper())
    if isinstance(parsed, int):
        return parsed
    raise ValueError(f"unsupported logging level {value!r}")


__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "get_active_logging_handle",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
