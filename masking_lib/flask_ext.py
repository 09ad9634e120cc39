"""Flask integration helpers for masking_lib."""

from __future__ import annotations

from typing import Optional

from flask import Flask

from .config import get_settings
from .handlers import install_masking
from .interceptor import MaskedDataInterceptor, create_policy

EXTENSION_KEY = "masking_lib"


def register_flask_masking(
    app: Flask, *, spec_mask_file: str | None = None
) -> Optional[MaskedDataInterceptor]:
    """Mask every message written through ``app.logger``.

    Records reaching the root handlers by propagation are masked too. Returns
    None, and registers nothing, when masking is disabled or no handler is
    reachable from ``app.logger``.
    """

    settings = get_settings()
    if not settings.enabled:
        return None

    path = spec_mask_file or app.config.get("LOG_MASK_SPEC_FILE") or settings.spec_mask_file
    handler = install_masking(app.logger, create_policy(path, settings=settings))
    if handler is None:
        return None

    app.extensions[EXTENSION_KEY] = handler.policy
    return handler.policy
