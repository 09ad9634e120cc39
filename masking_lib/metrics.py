"""In-process metrics for the masking runtime."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict


@dataclass
class MaskingMetrics:
    """Runtime metrics for the masking library."""

    messages_total: int = 0 # Messages passed through the policy
    known_pii_hits: dict[str, int] | None = None # Known-PII rewrites per rule name
    properties_masked_total: int = 0 # Property values replaced by the mask
    mask_failures: int = 0 # Messages left unmasked after an internal error
    catalog_failures: int = 0 # Catalog loads or pattern compiles that degraded
    truncations: int = 0 # Oversize messages truncated before matching

    def as_dict(self) -> dict[str, object]:
        """Return the metrics as a dictionary."""

        return {
            "messages_total": self.messages_total,
            "known_pii_hits": dict(self.known_pii_hits or {}),
            "properties_masked_total": self.properties_masked_total,
            "mask_failures": self.mask_failures,
            "catalog_failures": self.catalog_failures,
            "truncations": self.truncations,
        }


_LOCK = threading.RLock()
_METRICS = MaskingMetrics(known_pii_hits={})


def record_message() -> None:
    with _LOCK:
        _METRICS.messages_total += 1


def record_known_pii_hit(rule: str, count: int = 1) -> None:
    """Record rewrites performed by a known-PII rule."""

    if count <= 0:
        return

    with _LOCK:
        hits: Dict[str, int] = _METRICS.known_pii_hits or {}
        hits[rule] = hits.get(rule, 0) + count
        _METRICS.known_pii_hits = hits


def record_properties_masked(count: int) -> None:
    if count <= 0:
        return

    with _LOCK:
        _METRICS.properties_masked_total += count


def record_mask_failure() -> None:
    with _LOCK:
        _METRICS.mask_failures += 1


def record_catalog_failure() -> None:
    with _LOCK:
        _METRICS.catalog_failures += 1


def record_truncation() -> None:
    with _LOCK:
        _METRICS.truncations += 1


def reset_metrics() -> None:
    """Reset the metrics."""

    with _LOCK:
        _METRICS.messages_total = 0
        _METRICS.known_pii_hits = {}
        _METRICS.properties_masked_total = 0
        _METRICS.mask_failures = 0
        _METRICS.catalog_failures = 0
        _METRICS.truncations = 0


def get_metrics() -> MaskingMetrics:
    """Get a snapshot of the metrics."""

    with _LOCK:
        snapshot = MaskingMetrics(**_METRICS.as_dict())
        snapshot.known_pii_hits = dict(_METRICS.known_pii_hits or {})
        return snapshot
