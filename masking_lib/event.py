"""Immutable log event passed through the masking policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


def _freeze(context: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(context or {}))


@dataclass(frozen=True)
class LogEvent:
    """A log event; only ``message`` is ever rewritten."""

    message: str
    level: str = "INFO"
    logger_name: str = ""
    timestamp: float = 0.0
    thread_name: Optional[str] = None
    exc_info: Any = None
    stack_info: Optional[str] = None
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.context, MappingProxyType):
            object.__setattr__(self, "context", _freeze(self.context))

    def with_message(self, message: str) -> "LogEvent":
        """Return a copy of the event carrying ``message``."""

        return replace(self, message=message)

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEvent":
        """Lift a standard library record into an event."""

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        }

        return cls(
            message=record.getMessage(),
            level=record.levelname,
            logger_name=record.name,
            timestamp=record.created,
            thread_name=record.threadName,
            exc_info=record.exc_info,
            stack_info=record.stack_info,
            context=context,
        )
