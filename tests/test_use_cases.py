"""
Tests for use cases — reconcile and status vertical slices.
"""

import threading
from pathlib import Path

from provisioner.adapters.mock import MockProvider
from provisioner.adapters.registry import ProviderRegistry
from provisioner.core.models.outcome import Action, OutcomeKind
from provisioner.core.persistence.audit import AuditWriter, default_audit_path
from provisioner.core.use_cases.reconcile import run_reconcile
from provisioner.core.use_cases.status import get_status

CATALOG = """\
    name: dev-box
    provider:
      name: mock
      options:
        mock:
          installed:
            click: "7.0"
            pyyaml: "6.0"
          latest:
            click: "8.1.7"
    packages:
      - name: requests
        min_version: "2.31"
      - name: click
        min_version: "8.1"
      - name: pyyaml
        min_version: "6"
"""


# ── Reconcile ────────────────────────────────────────────────────────


class TestRunReconcile:
    def test_full_run(self, write_catalog, tmp_path: Path):
        result = run_reconcile(config_path=write_catalog(CATALOG))

        assert result.error is None
        report = result.report
        assert [r.kind for r in report.records] == [
            OutcomeKind.SUCCESS,
            OutcomeKind.UPDATED,
            OutcomeKind.SKIPPED,
        ]
        assert result.audit_path == default_audit_path(tmp_path.resolve())

        (entry,) = AuditWriter(result.audit_path).read_all()
        assert entry.catalog == "dev-box"
        assert entry.operation_id == report.operation_id
        assert entry.packages_updated == 1

    def test_no_audit(self, write_catalog, tmp_path: Path):
        result = run_reconcile(config_path=write_catalog(CATALOG), audit=False)
        assert result.report is not None
        assert result.audit_path is None
        assert not default_audit_path(tmp_path).exists()

    def test_dry_run_plans_only(self, write_catalog, tmp_path: Path):
        result = run_reconcile(config_path=write_catalog(CATALOG), dry_run=True)

        assert result.report is None
        assert [p.action for p in result.planned] == [Action.INSTALL, Action.UPGRADE, Action.SKIP]
        assert not default_audit_path(tmp_path).exists()
        assert result.to_dict()["plan"][0]["name"] == "requests"

    def test_force_reinstall(self, write_catalog):
        result = run_reconcile(config_path=write_catalog(CATALOG), force_reinstall=True, audit=False)
        actions = [r.action for r in result.report.records]
        assert actions == [Action.INSTALL, Action.REINSTALL, Action.REINSTALL]
        assert result.report.force_reinstall

    def test_invalid_catalog_is_error(self, write_catalog):
        result = run_reconcile(config_path=write_catalog("packages: 12\n"))
        assert result.error
        assert result.report is None
        assert result.to_dict() == {"error": result.error}

    def test_unknown_provider_is_error(self, write_catalog):
        path = write_catalog("provider:\n  name: apt\npackages: []\n")
        result = run_reconcile(config_path=path)
        assert "Unknown provider" in result.error

    def test_prepare_runs_first(self, write_catalog):
        provider = MockProvider()
        run_reconcile(config_path=write_catalog(CATALOG), provider=provider, audit=False)
        assert provider.call_log[0] == ("prepare", "")

    def test_skip_prereq_setup(self, write_catalog):
        provider = MockProvider()
        run_reconcile(
            config_path=write_catalog(CATALOG),
            provider=provider,
            skip_prereq_setup=True,
            audit=False,
        )
        assert ("prepare", "") not in provider.call_log

    def test_prepare_failure_aborts_before_any_entry(self, write_catalog):
        provider = MockProvider()
        provider.set_prepare_failure("cannot bootstrap")
        result = run_reconcile(config_path=write_catalog(CATALOG), provider=provider)

        assert result.error == "cannot bootstrap"
        assert provider.call_log == [("prepare", "")]

    def test_failures_do_not_become_errors(self, write_catalog):
        provider = MockProvider()
        provider.set_failure("install", "requests")
        result = run_reconcile(config_path=write_catalog(CATALOG), provider=provider, audit=False)
        assert result.error is None
        assert result.report.failed_names() == ["requests"]

    def test_custom_registry(self, write_catalog):
        registry = ProviderRegistry()
        registry.register("mock", lambda **kw: MockProvider("custom", **kw))
        result = run_reconcile(config_path=write_catalog(CATALOG), registry=registry, audit=False)
        assert result.report.provider == "custom"

    def test_cancel(self, write_catalog):
        cancel = threading.Event()
        cancel.set()
        result = run_reconcile(config_path=write_catalog(CATALOG), cancel=cancel, audit=False)
        assert result.report.skipped_count == 3


# ── Status ───────────────────────────────────────────────────────────


class TestGetStatus:
    def test_status(self, write_catalog):
        result = get_status(config_path=write_catalog(CATALOG))

        assert result.error is None
        assert result.provider == "mock"
        assert result.satisfied_count == 1
        assert result.pending_count == 2
        assert result.last_run is None
        data = result.to_dict()
        assert data["summary"] == {"total": 3, "satisfied": 1, "pending": 2, "errors": 0}

    def test_last_run(self, write_catalog):
        path = write_catalog(CATALOG)
        run = run_reconcile(config_path=path)
        result = get_status(config_path=path)
        assert result.last_run.operation_id == run.report.operation_id

    def test_mock_mode(self, write_catalog):
        path = write_catalog("provider:\n  name: pip\npackages:\n  - {name: a, min_version: '1'}\n")
        result = get_status(config_path=path, mock_mode=True)
        assert result.provider == "mock"
        assert result.pending_count == 1

    def test_error(self, tmp_path: Path):
        result = get_status(config_path=tmp_path / "missing.yml")
        assert result.error
        assert "error" in result.to_dict()
