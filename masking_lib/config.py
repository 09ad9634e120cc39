"""Configuration utilities for the masking library."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, replace
from typing import Any, Mapping

from .constants import (
    DEFAULT_MAX_LINE_LENGTH,
    DEFAULT_MAX_MESSAGE_LENGTH,
    LOCAL_SECRETS_MASKS_PATH,
    SECRETS_MASK,
)


def _bool_env(value: str | None, default: bool) -> bool:
    """Convert a string to a boolean."""

    if value is None:
        return default

    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(value: str | None, default: int) -> int:
    if value is None:
        return default

    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class MaskingSettings:
    """Immutable runtime configuration."""

    enabled: bool
    spec_mask_file: str
    mask: str
    max_message_length: int
    max_line_length: int
    truncate_suffix: str
    status_level: str

    def with_overrides(self, **kwargs: Any) -> "MaskingSettings":
        return replace(self, **kwargs)


_SETTINGS_LOCK = threading.RLock()
_SETTINGS: MaskingSettings | None = None


def load_settings(env: Mapping[str, str] | None = None) -> MaskingSettings:
    source = env if env is not None else os.environ

    return MaskingSettings(
        enabled=_bool_env(source.get("LOG_MASK_ENABLED"), True),
        spec_mask_file=source.get("LOG_MASK_SPEC_FILE") or LOCAL_SECRETS_MASKS_PATH,
        mask=source.get("LOG_MASK_TOKEN") or SECRETS_MASK,
        max_message_length=max(
            0,
            _int_env(
                source.get("LOG_MASK_MAX_MESSAGE_LENGTH"), DEFAULT_MAX_MESSAGE_LENGTH
            ),
        ),
        max_line_length=max(
            0,
            _int_env(source.get("LOG_MASK_MAX_LINE_LENGTH"), DEFAULT_MAX_LINE_LENGTH),
        ),
        truncate_suffix=source.get("LOG_MASK_TRUNCATE_SUFFIX", "..."),
        status_level=source.get("LOG_MASK_STATUS_LEVEL", "WARNING").upper(),
    )


def configure_settings(
    settings: MaskingSettings | None = None, **overrides: Any
) -> MaskingSettings:
    with _SETTINGS_LOCK:
        resolved = settings or load_settings()
        if overrides:
            resolved = resolved.with_overrides(**overrides)
        global _SETTINGS
        _SETTINGS = resolved
        return _SETTINGS


def get_settings() -> MaskingSettings:
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            return configure_settings()
        return _SETTINGS


def reset_settings() -> None:
    """Forget the configured settings; the next lookup reloads from the environment."""

    global _SETTINGS
    with _SETTINGS_LOCK:
        _SETTINGS = None
