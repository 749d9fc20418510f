"""
Catalog loader — reads catalog.yml into the Catalog model.

Reads YAML, validates against the pydantic schema, and enforces the
one rule the schema cannot: package names are unique. Any problem is a
ConfigError, which aborts a run before a single package is touched.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from provisioner.core.errors import FatalSetupError
from provisioner.core.models.catalog import Catalog

logger = logging.getLogger(__name__)

CATALOG_FILE = "catalog.yml"


class ConfigError(FatalSetupError):
    """Raised when the catalog is missing or invalid."""


def find_catalog_file(start_dir: Path | None = None) -> Path | None:
    """Search for catalog.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to catalog.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CATALOG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_catalog(path: Path | None = None) -> Catalog:
    """Load and validate a catalog.

    Args:
        path: Explicit path to catalog.yml. If None, searches upward.

    Returns:
        Validated Catalog with unique package names.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_catalog_file()

    if path is None:
        raise ConfigError(f"No {CATALOG_FILE} found. Create one, or specify --config.")

    if not path.is_file():
        raise ConfigError(f"Catalog file not found: {path}")

    logger.debug("Loading catalog from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        catalog = Catalog.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid catalog {path}: {_format_errors(e)}") from e

    dupes = catalog.duplicate_names()
    if dupes:
        raise ConfigError(f"Duplicate package names in {path}: {', '.join(dupes)}")

    logger.info("Loaded catalog '%s' with %d packages", catalog.name or path.stem, len(catalog.packages))
    return catalog


def catalog_root(config_path: Path) -> Path:
    """Directory holding the catalog file (where .state/ lives)."""
    return config_path.parent.resolve()


def _format_errors(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg', '')}" if loc else err.get("msg", ""))
    return "; ".join(parts)
