"""Public API for the log masking library."""

from __future__ import annotations

from .config import MaskingSettings, configure_settings, get_settings, load_settings
from .constants import LOCAL_SECRETS_MASKS_PATH, POLICY_NAME, SECRETS_MASK
from .event import LogEvent
from .handlers import (
    RewriteHandler,
    available_policies,
    get_rewrite_policy,
    install_masking,
    register_rewrite_policy,
    uninstall_masking,
)
from .interceptor import (
    MaskedDataInterceptor,
    MessageRewriter,
    create_policy,
    get_default_interceptor,
    reset_default_interceptor,
)
from .metrics import get_metrics
from .status import get_status_logger
from .rules import (
    DEFAULT_KNOWN_PII_RULES,
    KnownPiiRule,
    build_rule,
    destination_error_end,
)

__all__ = [
    "configure",
    "MaskingSettings",
    "load_settings",
    "get_settings",
    "LogEvent",
    "MaskedDataInterceptor",
    "MessageRewriter",
    "create_policy",
    "get_default_interceptor",
    "KnownPiiRule",
    "DEFAULT_KNOWN_PII_RULES",
    "build_rule",
    "destination_error_end",
    "RewriteHandler",
    "install_masking",
    "uninstall_masking",
    "register_rewrite_policy",
    "get_rewrite_policy",
    "available_policies",
    "get_metrics",
    "SECRETS_MASK",
    "LOCAL_SECRETS_MASKS_PATH",
    "POLICY_NAME",
]


def configure(settings: MaskingSettings | None = None, **overrides) -> MaskingSettings:
    """Configure the masking library; the default interceptor is rebuilt on next use."""

    resolved = configure_settings(settings, **overrides)
    get_status_logger().setLevel(resolved.status_level)
    reset_default_interceptor()

    return resolved
