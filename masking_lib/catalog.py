"""Loading of the maskable property catalog."""

from __future__ import annotations

from dataclasses import dataclass
from importlib.resources import files
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

from .constants import KNOWN_PII_RULES_KEY, PROPERTIES_KEY
from .metrics import record_catalog_failure
from .rules import DEFAULT_TEMPLATE, KnownPiiRule, build_rule
from .status import get_status_logger


@dataclass(frozen=True)
class MaskCatalog:
    """Contents of a mask catalog after validation."""

    properties: frozenset[str]
    rules: Optional[tuple[KnownPiiRule, ...]] = None


EMPTY_CATALOG = MaskCatalog(properties=frozenset())


def resolve_catalog(spec_mask_file: str) -> str:
    """Read the catalog from disk, or from the package resources as a fallback."""

    path = Path(spec_mask_file)
    if path.is_file():
        return path.read_text(encoding="utf-8")

    resource = files(__package__)
    for part in spec_mask_file.strip("/").split("/"):
        resource = resource / part
    return resource.read_text(encoding="utf-8")


def _load_document(spec_mask_file: str) -> Mapping[str, Any]:
    document = yaml.safe_load(resolve_catalog(spec_mask_file))
    if document is None:
        return {}
    if not isinstance(document, Mapping):
        raise ValueError(f"expected a mapping, got {type(document).__name__}")
    return document


def _parse_properties(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise ValueError(f"'{PROPERTIES_KEY}' must be a list of names")

    names = set()
    for entry in value:
        if not isinstance(entry, str):
            raise ValueError(f"property names must be strings, got {entry!r}")
        if entry.strip():
            names.add(entry.strip())
    return frozenset(names)


def _parse_rule(entry: Any) -> KnownPiiRule:
    if not isinstance(entry, Mapping) or not entry.get("name"):
        raise ValueError(f"rule entries need a name, got {entry!r}")

    name = str(entry["name"])
    if not entry.get("message_prefix"):
        raise ValueError(f"rule {name!r} needs a 'message_prefix'")

    return build_rule(
        name,
        str(entry["message_prefix"]),
        anchor=str(entry.get("anchor") or ""),
        markers=tuple(str(marker) for marker in entry.get("markers") or ()),
        template=str(entry.get("template") or DEFAULT_TEMPLATE),
    )


def _parse_rules(value: Any) -> Optional[tuple[KnownPiiRule, ...]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValueError(f"'{KNOWN_PII_RULES_KEY}' must be a list")
    return tuple(_parse_rule(entry) for entry in value)


def _degrade(spec_mask_file: str, exc: BaseException) -> None:
    get_status_logger().error(
        "Unable to load mask data from '%s': %s.", spec_mask_file, exc
    )
    record_catalog_failure()


def load_catalog(spec_mask_file: str) -> MaskCatalog:
    """Load properties and rules; each section degrades on its own."""

    try:
        document = _load_document(spec_mask_file)
    except Exception as exc:
        _degrade(spec_mask_file, exc)
        return EMPTY_CATALOG

    try:
        properties = _parse_properties(document.get(PROPERTIES_KEY))
    except Exception as exc:
        _degrade(spec_mask_file, exc)
        properties = frozenset()

    try:
        rules = _parse_rules(document.get(KNOWN_PII_RULES_KEY))
    except Exception as exc:
        _degrade(spec_mask_file, exc)
        rules = None

    return MaskCatalog(properties=properties, rules=rules)


def load_maskable_properties(spec_mask_file: str) -> frozenset[str]:
    """Return the maskable property names, or an empty set on any failure."""

    return load_catalog(spec_mask_file).properties


def load_known_pii_rules(spec_mask_file: str) -> Optional[tuple[KnownPiiRule, ...]]:
    """Return the catalog's known-PII rules, or None when it defines none."""

    return load_catalog(spec_mask_file).rules
