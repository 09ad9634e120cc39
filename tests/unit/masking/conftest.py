"""Fixtures for masking library unit tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

import pytest
import yaml

from masking_lib.config import reset_settings
from masking_lib.interceptor import MaskedDataInterceptor, reset_default_interceptor
from masking_lib.status import get_status_logger

from tests.utils.masking import ListHandler, reset_masking_metrics


def pytest_collection_modifyitems(config, items):  # pragma: no cover - Pytest hook
    """Tag every test in this directory with the `masking` marker."""

    for item in items:
        item.add_marker(pytest.mark.masking)


@pytest.fixture(autouse=True)
def _reset_masking_state(monkeypatch):
    """Reset masking globals (settings, default interceptor, metrics) around each test."""

    for name in (
        "LOG_MASK_ENABLED",
        "LOG_MASK_SPEC_FILE",
        "LOG_MASK_TOKEN",
        "LOG_MASK_MAX_MESSAGE_LENGTH",
        "LOG_MASK_MAX_LINE_LENGTH",
        "LOG_MASK_TRUNCATE_SUFFIX",
        "LOG_MASK_STATUS_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    reset_settings()
    reset_default_interceptor()
    reset_masking_metrics()
    yield
    reset_masking_metrics()
    reset_default_interceptor()
    reset_settings()


@pytest.fixture
def write_catalog(tmp_path: Path) -> Callable[..., Path]:
    """Write a catalog document to a temporary YAML file."""

    def _write(document: object = None, *, raw: str | None = None, name: str = "mask.yaml") -> Path:
        path = tmp_path / name
        if raw is not None:
            path.write_text(raw, encoding="utf-8")
        else:
            path.write_text(yaml.safe_dump(document), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def catalog_file(write_catalog) -> Path:
    """Catalog masking a handful of common secret properties."""

    return write_catalog({"properties": ["password", "ssn", "tokens", "port"]})


@pytest.fixture
def make_interceptor() -> Callable[..., MaskedDataInterceptor]:
    def _make(properties: Iterable[str] = ("password", "ssn", "tokens", "port"), **kwargs):
        return MaskedDataInterceptor(properties, **kwargs)

    return _make


@pytest.fixture
def status_records() -> ListHandler:
    """Capture records written to the masking status logger."""

    handler = ListHandler()
    logger = get_status_logger()
    logger.addHandler(handler)
    yield handler
    logger.removeHandler(handler)
