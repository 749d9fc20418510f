"""
Shared test fixtures and configuration.
"""

import logging
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from provisioner.adapters.mock import MockProvider
from provisioner.core.models.catalog import CatalogEntry


@pytest.fixture
def mock_provider() -> MockProvider:
    """Empty in-memory provider."""
    return MockProvider()


@pytest.fixture
def make_entries() -> Callable[..., list[CatalogEntry]]:
    """Build catalog entries from (name, min_version) pairs."""

    def _make(*pairs: tuple[str, str]) -> list[CatalogEntry]:
        return [CatalogEntry(name=n, min_version=v) for n, v in pairs]

    return _make


@pytest.fixture
def write_catalog(tmp_path: Path) -> Callable[[str], Path]:
    """Write a catalog.yml into tmp_path and return its path."""

    def _write(content: str) -> Path:
        path = tmp_path / "catalog.yml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """setup_logging replaces root handlers; restore them after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
