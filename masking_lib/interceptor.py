"""Rewrite policy masking sensitive data in log messages.

Every message passes through two stages, in this order:

1. known-PII rules, which cut the payload off recognised error shapes;
2. the property masker, which replaces the value of every ``"key": value``
   pair whose key is in the catalog.

The policy never raises into the logging call site. Any internal failure
leaves the message unmasked, is reported on the status logger and is counted
in ``mask_failures``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Optional, Protocol, Sequence

from .catalog import load_catalog
from .config import MaskingSettings, get_settings
from .constants import DEFAULT_MAX_LINE_LENGTH, DEFAULT_MAX_MESSAGE_LENGTH, SECRETS_MASK
from .event import LogEvent
from .metrics import record_mask_failure, record_message, record_truncation
from .patterns import (
    DANGLING_VALUE_PATTERN_SUFFIX,
    build_property_pattern,
    mask_properties,
)
from .rules import DEFAULT_KNOWN_PII_RULES, KnownPiiRule, scrub_known_pii
from .status import get_status_logger


class MessageRewriter(Protocol):
    """Anything able to rewrite a rendered log message."""

    def apply_mask(self, message: str) -> str:  # pragma: no cover - protocol
        ...


class MaskedDataInterceptor:
    """Masks known PII shapes and maskable JSON properties in log messages."""

    def __init__(
        self,
        properties: Iterable[str] = (),
        rules: Sequence[KnownPiiRule] = DEFAULT_KNOWN_PII_RULES,
        *,
        mask: str = SECRETS_MASK,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
        truncate_suffix: str = "...",
    ) -> None:
        self._properties = frozenset(properties)
        self._rules = tuple(rules)
        self._mask = mask
        self._max_message_length = max(0, max_message_length)
        self._max_line_length = max(0, max_line_length)
        self._truncate_suffix = truncate_suffix
        self._pattern = build_property_pattern(self._properties)
        self._dangling_pattern = (
            build_property_pattern(self._properties, DANGLING_VALUE_PATTERN_SUFFIX)
            if self._pattern is not None
            else None
        )

    @property
    def properties(self) -> frozenset[str]:
        return self._properties

    @property
    def rules(self) -> tuple[KnownPiiRule, ...]:
        return self._rules

    @property
    def mask(self) -> str:
        return self._mask

    @property
    def masks_properties(self) -> bool:
        """Whether the property stage is active."""

        return self._pattern is not None

    def apply_mask(self, message: str) -> str:
        """Return the masked message, or ``message`` itself if masking fails."""

        try:
            return self._apply_mask(message)
        except Exception:
            get_status_logger().exception(
                "Masking failed, message emitted without redaction"
            )
            record_mask_failure()
            return message

    def rewrite(self, event: LogEvent) -> LogEvent:
        """Return a new event whose message has been masked."""

        return event.with_message(self.apply_mask(event.message))

    def rewrite_record(self, record: logging.LogRecord) -> logging.LogRecord:
        """Return a masked copy of a standard library record.

        The copy carries the rendered message with no formatting arguments;
        every other attribute is shared with ``record``.
        """

        try:
            try:
                message = record.getMessage()
            except Exception:
                message = str(record.msg)

            rewritten = logging.makeLogRecord(record.__dict__)
            rewritten.msg = self.apply_mask(message)
            rewritten.args = None
            rewritten.__dict__.pop("message", None)
            return rewritten
        except Exception:
            get_status_logger().exception("Unable to rewrite record from %s", record.name)
            record_mask_failure()
            return record

    # --------------------- internal helpers ---------------------
    def _apply_mask(self, message: Any) -> str:
        record_message()

        if isinstance(message, bytes):
            message = message.decode("utf-8", "replace")
        elif not isinstance(message, str):
            message = str(message)

        limit = self._max_message_length
        truncated = bool(limit) and len(message) > limit
        if truncated:
            record_truncation()
            message = message[:limit]

        scrubbed = scrub_known_pii(
            message, self._rules, self._mask, self._max_line_length
        )
        masked = mask_properties(scrubbed, self._pattern, self._mask)

        if truncated:
            masked = mask_properties(masked, self._dangling_pattern, self._mask)
            masked += self._truncate_suffix

        return masked


def create_policy(
    spec_mask_file: Optional[str] = None, *, settings: MaskingSettings | None = None
) -> MaskedDataInterceptor:
    """Build an interceptor from a catalog path (or the configured default)."""

    resolved = settings or get_settings()
    path = spec_mask_file or resolved.spec_mask_file

    get_status_logger().info("Loading mask data from '%s'", path)
    catalog = load_catalog(path)

    return MaskedDataInterceptor(
        catalog.properties,
        catalog.rules if catalog.rules is not None else DEFAULT_KNOWN_PII_RULES,
        mask=resolved.mask,
        max_message_length=resolved.max_message_length,
        max_line_length=resolved.max_line_length,
        truncate_suffix=resolved.truncate_suffix,
    )


_INTERCEPTOR_LOCK = threading.Lock()
_INTERCEPTOR: MaskedDataInterceptor | None = None


def get_default_interceptor() -> MaskedDataInterceptor:
    """Return the process-wide interceptor, building it on first use."""

    global _INTERCEPTOR

    interceptor = _INTERCEPTOR
    if interceptor is not None:
        return interceptor

    with _INTERCEPTOR_LOCK:
        if _INTERCEPTOR is None:
            _INTERCEPTOR = create_policy()
        return _INTERCEPTOR


def reset_default_interceptor() -> None:
    """Drop the process-wide interceptor; the next lookup rebuilds it."""

    global _INTERCEPTOR
    with _INTERCEPTOR_LOCK:
        _INTERCEPTOR = None
