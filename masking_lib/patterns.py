"""Property masking pattern compiler."""

from __future__ import annotations

import re
from typing import Iterable, Optional, Pattern

from .metrics import record_catalog_failure, record_properties_masked
from .status import get_status_logger


CASE_INSENSITIVE_FLAG = "(?i)"

PROPERTY_MATCHING_PATTERN_DELIMITER = "|"

PROPERTY_MATCHING_PATTERN_PREFIX = '"('

# A JSON string (escapes allowed), an array without nested brackets, or digits.
PROPERTY_MATCHING_PATTERN_SUFFIX = r')"\s*:\s*("(?:[^"\\]|\\.)*"|\[[^\]\[]*\]|\d+)'

# A string or array value cut off by the end of a truncated message.
DANGLING_VALUE_PATTERN_SUFFIX = r')"\s*:\s*("(?:[^"\\]|\\.)*\\?|\[[^\]\[]*)\Z'


def generate_pattern(
    properties: Iterable[str], suffix: str = PROPERTY_MATCHING_PATTERN_SUFFIX
) -> str:
    """Generate the property matching expression for the given names.

    Names are inserted verbatim; the catalog is trusted to contain plain
    identifiers.
    """

    return (
        CASE_INSENSITIVE_FLAG
        + PROPERTY_MATCHING_PATTERN_PREFIX
        + PROPERTY_MATCHING_PATTERN_DELIMITER.join(sorted(properties))
        + suffix
    )


def build_property_pattern(
    properties: Iterable[str], suffix: str = PROPERTY_MATCHING_PATTERN_SUFFIX
) -> Optional[Pattern[str]]:
    """Compile the matcher, or return ``None`` when there is nothing to mask."""

    names = [name for name in properties if name]
    if not names:
        return None

    try:
        return re.compile(generate_pattern(names, suffix))
    except re.error as exc:
        get_status_logger().error(
            "Unable to compile maskable property pattern: %s.", exc
        )
        record_catalog_failure()
        return None


def mask_properties(message: str, pattern: Optional[Pattern[str]], mask: str) -> str:
    """Replace every maskable ``"key": value`` pair with ``"key":"<mask>"``."""

    if pattern is None:
        return message

    masked, count = pattern.subn(
        lambda match: '"' + match.group(1) + '":"' + mask + '"', message
    )
    record_properties_masked(count)
    return masked
