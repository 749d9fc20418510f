"""
Status use case — compare installed packages against the catalog.

Read-only: queries the provider for every entry and reports the action
a reconcile would take, plus the last run recorded in the audit ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import ProviderRegistry, default_registry
from provisioner.core.config.loader import catalog_root, find_catalog_file, load_catalog
from provisioner.core.engine.reconciler import PlannedAction, plan
from provisioner.core.errors import FatalSetupError
from provisioner.core.models.catalog import Catalog
from provisioner.core.models.outcome import Action
from provisioner.core.persistence.audit import AuditEntry, AuditWriter, default_audit_path


@dataclass
class StatusResult:
    """Installed state of every catalog entry."""

    catalog: Catalog | None = None
    config_path: Path | None = None
    provider: str = ""
    entries: list[PlannedAction] = field(default_factory=list)
    last_run: AuditEntry | None = None
    error: str | None = None

    @property
    def satisfied_count(self) -> int:
        return sum(1 for e in self.entries if e.action == Action.SKIP)

    @property
    def pending_count(self) -> int:
        return sum(1 for e in self.entries if e.action in (Action.INSTALL, Action.UPGRADE))

    @property
    def error_count(self) -> int:
        return sum(1 for e in self.entries if e.error)

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["catalog"] = self.catalog.name if self.catalog else ""
        result["config_path"] = str(self.config_path) if self.config_path else None
        result["provider"] = self.provider
        result["packages"] = [e.to_dict() for e in self.entries]
        result["summary"] = {
            "total": len(self.entries),
            "satisfied": self.satisfied_count,
            "pending": self.pending_count,
            "errors": self.error_count,
        }
        result["last_run"] = self.last_run.model_dump(mode="json") if self.last_run else None
        return result


def get_status(
    config_path: Path | None = None,
    mock_mode: bool = False,
    registry: ProviderRegistry | None = None,
) -> StatusResult:
    """Query every catalog entry without changing anything.

    Args:
        config_path: Optional explicit path to catalog.yml.
        mock_mode: Query an in-memory provider instead of the real one.
        registry: Optional pre-configured provider registry.

    Returns:
        StatusResult with per-entry state and the pending action.
    """
    result = StatusResult()

    try:
        if config_path is None:
            config_path = find_catalog_file()
        catalog = load_catalog(config_path)
        result.catalog = catalog
        result.config_path = config_path

        registry = registry or default_registry(mock_mode=mock_mode)
        provider = registry.build(catalog.provider)
        result.provider = provider.name

    except FatalSetupError as e:
        result.error = str(e)
        return result

    result.entries = plan(catalog.packages, False, provider)

    recent = AuditWriter(default_audit_path(catalog_root(config_path))).read_recent(1)
    result.last_run = recent[0] if recent else None

    return result
