"""
Catalog check use case — validate catalog.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import ProviderRegistry, default_registry
from provisioner.core.config.loader import CATALOG_FILE, ConfigError, find_catalog_file, load_catalog
from provisioner.core.models.catalog import Catalog


@dataclass
class CatalogCheckResult:
    """Result of catalog validation."""

    valid: bool = False
    catalog: Catalog | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "catalog_name": self.catalog.name if self.catalog else None,
            "package_count": len(self.catalog.packages) if self.catalog else 0,
            "provider": self.catalog.provider.name if self.catalog else None,
        }


def check_catalog(
    config_path: Path | None = None,
    registry: ProviderRegistry | None = None,
) -> CatalogCheckResult:
    """Validate a catalog without touching any provider.

    Args:
        config_path: Optional explicit path to catalog.yml.
        registry: Registry used to recognise provider names.

    Returns:
        CatalogCheckResult with validation status and any issues.
    """
    result = CatalogCheckResult()

    if config_path is None:
        config_path = find_catalog_file()
    if config_path is None:
        result.errors.append(f"No {CATALOG_FILE} found.")
        return result
    result.config_path = config_path

    try:
        catalog = load_catalog(config_path)
        result.catalog = catalog
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    if not catalog.packages:
        result.warnings.append("No packages defined. A reconcile run will do nothing.")

    registry = registry or default_registry()
    known = set(registry.list_providers())
    settings = catalog.provider
    for name in [settings.name, *settings.fallback]:
        if name not in known:
            result.errors.append(
                f"Unknown provider '{name}'. Known providers: {', '.join(sorted(known))}"
            )

    if settings.name in settings.fallback:
        result.warnings.append(f"Provider '{settings.name}' is listed as its own fallback.")

    for name in settings.options:
        if name not in known:
            result.warnings.append(f"Options given for unknown provider '{name}'.")

    if settings.retry_base_delay > settings.retry_max_delay:
        result.warnings.append(
            f"retry_base_delay ({settings.retry_base_delay}) exceeds "
            f"retry_max_delay ({settings.retry_max_delay}); every retry waits the maximum."
        )

    result.valid = len(result.errors) == 0
    return result
