"""
Reconcile use case — provision every package in the catalog.

This is the top-level orchestrator: it loads the catalog, builds the
provider, runs prerequisite setup, reconciles, and appends the run to
the audit ledger. The full vertical slice from catalog to report.

Fatal setup problems (bad catalog, provider unavailable, prerequisites
failing) end up in ``ReconcileResult.error``. Per-package failures do
not: they are records in the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from provisioner.adapters.base import PackageProvider
from provisioner.adapters.registry import ProviderRegistry, default_registry
from provisioner.core.config.loader import catalog_root, find_catalog_file, load_catalog
from provisioner.core.engine.reconciler import (
    CancelSignal,
    InstallReport,
    PlannedAction,
    plan,
    reconcile,
    write_audit_entries,
)
from provisioner.core.engine.rendering import render_report
from provisioner.core.errors import FatalSetupError
from provisioner.core.models.catalog import Catalog
from provisioner.core.persistence.audit import AuditWriter, default_audit_path

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result of a reconcile (or dry-run) invocation."""

    report: InstallReport | None = None
    planned: list[PlannedAction] | None = None
    catalog: Catalog | None = None
    catalog_path: Path | None = None
    dry_run: bool = False
    audit_path: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["catalog"] = self.catalog.name if self.catalog else ""
        result["catalog_path"] = str(self.catalog_path) if self.catalog_path else None
        result["dry_run"] = self.dry_run

        if self.report:
            result["report"] = self.report.to_dict()
        if self.planned is not None:
            result["plan"] = [p.to_dict() for p in self.planned]

        return result


def run_reconcile(
    config_path: Path | None = None,
    force_reinstall: bool = False,
    skip_prereq_setup: bool = False,
    mock_mode: bool = False,
    dry_run: bool = False,
    audit: bool = True,
    registry: ProviderRegistry | None = None,
    provider: PackageProvider | None = None,
    cancel: CancelSignal | None = None,
) -> ReconcileResult:
    """Load the catalog and converge installed packages to it.

    Args:
        config_path: Explicit catalog.yml path (default: search upward).
        force_reinstall: Uninstall present packages before installing.
        skip_prereq_setup: Do not call the provider's ``prepare``.
        mock_mode: Use an in-memory provider, nothing is installed.
        dry_run: Query and plan only, no mutation and no audit entry.
        audit: Append the run to the audit ledger.
        registry: Optional pre-configured provider registry.
        provider: Optional ready-made provider (bypasses the registry).
        cancel: Optional signal checked between entries.

    Returns:
        ReconcileResult with the report (or plan) or a fatal error.
    """
    result = ReconcileResult(dry_run=dry_run)

    try:
        if config_path is None:
            config_path = find_catalog_file()
        catalog = load_catalog(config_path)
        result.catalog = catalog
        result.catalog_path = config_path

        if provider is None:
            registry = registry or default_registry(mock_mode=mock_mode)
            provider = registry.build(catalog.provider)

        if not skip_prereq_setup and not dry_run:
            logger.info("Preparing provider %s", provider.name)
            provider.prepare()

    except FatalSetupError as e:
        result.error = str(e)
        return result

    if dry_run:
        result.planned = plan(catalog.packages, force_reinstall, provider)
        return result

    report = reconcile(catalog.packages, force_reinstall, provider, cancel=cancel)
    result.report = report
    logger.info("\n%s", render_report(report))

    if audit and config_path is not None:
        audit_path = default_audit_path(catalog_root(config_path))
        write_audit_entries(report, AuditWriter(audit_path), catalog_name=catalog.name)
        result.audit_path = audit_path

    return result
