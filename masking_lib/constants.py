"""Shared constants for the masking library."""

from __future__ import annotations

# Uniform replacement for every redacted value.
SECRETS_MASK = "**********"

# Built-in catalog, resolved against the package when no such file exists on disk.
LOCAL_SECRETS_MASKS_PATH = "/seed/specs_secrets_mask.yaml"

PROPERTIES_KEY = "properties"
KNOWN_PII_RULES_KEY = "known_pii_rules"

POLICY_NAME = "MaskedDataInterceptor"

DEFAULT_MAX_MESSAGE_LENGTH = 65_536
# Longer lines get a single leftmost attempt per known-PII rule.
DEFAULT_MAX_LINE_LENGTH = 4096
