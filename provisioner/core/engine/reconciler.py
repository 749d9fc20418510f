"""
Reconciler — the central convergence loop.

Takes a desired catalog and a provider, and for every entry, in order:

    query → (forced removal) → decide action → execute → verify → record

Every entry yields exactly one OutcomeRecord. Provider errors and
unexpected exceptions are caught at the entry boundary and recorded as
Failed, so one broken package never stops the rest of the run.

Execution is strictly sequential: package managers serialize registry
mutations, and the report must come out in catalog order.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from provisioner.adapters.base import PackageProvider
from provisioner.core.engine.rendering import MARKERS
from provisioner.core.errors import ConsistencyError, ProviderError, QueryError, UpgradeError
from provisioner.core.models.catalog import CatalogEntry
from provisioner.core.models.outcome import Action, OutcomeKind, OutcomeRecord
from provisioner.core.models.state import Absent, InstalledState, Present
from provisioner.core.models.version import VersionSpec
from provisioner.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


CANCELLED_DETAIL = "run cancelled before processing"


class CancelSignal(Protocol):
    """Anything with ``is_set()``, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...


@dataclass
class InstallReport:
    """Result of one reconcile run. Counts are derived, never stored."""

    operation_id: str = ""
    provider: str = ""
    force_reinstall: bool = False
    records: list[OutcomeRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.records)

    def _count(self, kind: OutcomeKind) -> int:
        return sum(1 for r in self.records if r.kind == kind)

    @property
    def success_count(self) -> int:
        return self._count(OutcomeKind.SUCCESS)

    @property
    def updated_count(self) -> int:
        return self._count(OutcomeKind.UPDATED)

    @property
    def skipped_count(self) -> int:
        return self._count(OutcomeKind.SKIPPED)

    @property
    def failed_count(self) -> int:
        return self._count(OutcomeKind.FAILED)

    @property
    def status(self) -> str:
        if self.failed_count == 0:
            return "ok"
        if self.failed_count < self.total:
            return "partial"
        return "failed"

    def grouped(self) -> dict[OutcomeKind, list[OutcomeRecord]]:
        """Records by outcome kind, in report order (success → failed)."""
        groups: dict[OutcomeKind, list[OutcomeRecord]] = {kind: [] for kind in OutcomeKind}
        for record in self.records:
            groups[record.kind].append(record)
        return groups

    def failed_names(self) -> list[str]:
        return [r.name for r in self.records if r.failed]

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "provider": self.provider,
            "force_reinstall": self.force_reinstall,
            "status": self.status,
            "total": self.total,
            "success": self.success_count,
            "updated": self.updated_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "records": [r.model_dump(mode="json") for r in self.records],
        }


@dataclass
class PlannedAction:
    """Read-only preview of what reconcile would do for one entry."""

    name: str
    min_version: VersionSpec
    state: InstalledState | None = None
    action: Action | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "min_version": str(self.min_version),
            "installed": str(self.state.version) if isinstance(self.state, Present) else None,
            "action": self.action.value if self.action else None,
            "error": self.error,
        }


def decide_action(
    state: InstalledState,
    min_version: VersionSpec,
    force_reinstall: bool = False,
) -> Action:
    """Pick the action for one entry. Pure.

    The floor is inclusive: an installed version equal to
    ``min_version`` is satisfied.
    """
    if isinstance(state, Absent):
        return Action.INSTALL
    if force_reinstall:
        return Action.REINSTALL
    if state.version < min_version:
        return Action.UPGRADE
    return Action.SKIP


def reconcile(
    catalog: Sequence[CatalogEntry],
    force_reinstall: bool,
    provider: PackageProvider,
    *,
    cancel: CancelSignal | None = None,
    operation_id: str | None = None,
) -> InstallReport:
    """Converge the provider's installed packages to ``catalog``.

    Names are expected to be unique. Duplicates are not merged: each
    occurrence is processed and recorded on its own.

    Args:
        catalog: Desired entries, processed in order.
        force_reinstall: Uninstall present packages before installing.
        provider: Package provider to query and mutate.
        cancel: Optional signal checked between entries. Once set, the
            remaining entries are recorded as skipped.
        operation_id: Identifier for the run (generated if omitted).

    Returns:
        InstallReport with one record per catalog entry, in catalog order.
    """
    report = InstallReport(
        operation_id=operation_id or generate_operation_id(),
        provider=provider.name,
        force_reinstall=force_reinstall,
    )

    cancelled = False
    for entry in catalog:
        if not cancelled and cancel is not None and cancel.is_set():
            logger.warning("Run %s cancelled, skipping remaining entries", report.operation_id)
            cancelled = True

        if cancelled:
            record = OutcomeRecord.skipped(entry.name, None, reason=CANCELLED_DETAIL, action=None)
        else:
            record = _reconcile_entry(entry, force_reinstall, provider)

        report.records.append(record)
        _log_record(record)

    logger.info(
        "Reconcile %s: %d success, %d updated, %d skipped, %d failed",
        report.operation_id,
        report.success_count,
        report.updated_count,
        report.skipped_count,
        report.failed_count,
    )
    return report


def plan(
    catalog: Sequence[CatalogEntry],
    force_reinstall: bool,
    provider: PackageProvider,
) -> list[PlannedAction]:
    """Preview actions without mutating anything (query only)."""
    planned = []
    for entry in catalog:
        item = PlannedAction(name=entry.name, min_version=entry.min_version)
        try:
            item.state = _query_state(provider, entry.name)
            item.action = decide_action(item.state, entry.min_version, force_reinstall)
        except ProviderError as e:
            item.error = f"{e.kind}: {e}"
        except Exception as e:
            item.error = f"UnexpectedError: {e}"
        planned.append(item)
    return planned


def _reconcile_entry(
    entry: CatalogEntry,
    force_reinstall: bool,
    provider: PackageProvider,
) -> OutcomeRecord:
    """Run one entry to its terminal record. Never raises."""
    started_at = _now_iso()
    start = time.monotonic()

    record = _execute_entry(entry, force_reinstall, provider)

    record.started_at = started_at
    record.ended_at = _now_iso()
    record.duration_ms = int((time.monotonic() - start) * 1000)
    return record


def _execute_entry(
    entry: CatalogEntry,
    force_reinstall: bool,
    provider: PackageProvider,
) -> OutcomeRecord:
    name = entry.name

    try:
        state = _query_state(provider, name)
    except ProviderError as e:
        return _failure(name, e.kind, f"query failed: {e}")
    except Exception as e:
        logger.error("Provider %s raised during query of %s: %s", provider.name, name, e)
        return _failure(name, "UnexpectedError", f"query failed: {e}")

    action: Action | None = None
    previous = str(state.version) if isinstance(state, Present) else None

    try:
        action = decide_action(state, entry.min_version, force_reinstall)
        logger.debug("%s: %s, floor %s → %s", name, state, entry.min_version, action)

        if action == Action.SKIP:
            return OutcomeRecord.skipped(
                name,
                previous,
                reason=f"{previous} satisfies >= {entry.min_version}",
                previous_version=previous,
            )

        if action == Action.REINSTALL:
            provider.uninstall(name)

        if action in (Action.INSTALL, Action.REINSTALL):
            provider.install(name, entry.min_version)
            installed = _verify_present(provider, name, "install")
            if installed < entry.min_version:
                raise ConsistencyError(
                    f"install reported success but {installed} is below {entry.min_version}",
                    package=name,
                )
            return OutcomeRecord.success(
                name,
                action,
                str(installed),
                previous_version=previous,
                detail=f"installed {installed}" if previous is None else f"reinstalled {previous} → {installed}",
            )

        provider.upgrade(name)
        installed = _verify_present(provider, name, "upgrade")
        if installed < entry.min_version:
            raise UpgradeError(
                f"upgraded {previous} → {installed} but still below {entry.min_version}",
                package=name,
            )
        return OutcomeRecord.updated(name, previous or "", str(installed))

    except ProviderError as e:
        return _failure(name, e.kind, str(e), action=action, previous_version=previous)
    except Exception as e:
        logger.error("Provider %s raised during %s of %s: %s", provider.name, action, name, e)
        return _failure(name, "UnexpectedError", str(e), action=action, previous_version=previous)


def _verify_present(provider: PackageProvider, name: str, operation: str) -> VersionSpec:
    """Re-query after a mutation; a missing package is a ConsistencyError."""
    state = _query_state(provider, name)
    if isinstance(state, Absent):
        raise ConsistencyError(f"{operation} reported success but package not found", package=name)
    return state.version


def _query_state(provider: PackageProvider, name: str) -> InstalledState:
    """Query one package; anything but Absent or Present(VersionSpec) is a QueryError."""
    state = provider.query(name)
    if isinstance(state, Absent):
        return state
    if isinstance(state, Present) and isinstance(state.version, VersionSpec):
        return state
    raise QueryError(f"provider returned an invalid state: {state!r}", package=name)


def _failure(name: str, kind: str, message: str, **kwargs) -> OutcomeRecord:
    return OutcomeRecord.failure(name, detail=f"{kind}: {message}", error_kind=kind, **kwargs)


def _log_record(record: OutcomeRecord) -> None:
    marker = MARKERS[record.kind]
    version = f" {record.version}" if record.version else ""
    logger.info("%s %s%s → %s", marker, record.name, version, record.kind)
    if record.failed:
        logger.warning("%s failed: %s", record.name, record.detail)


def write_audit_entries(report: InstallReport, audit_writer: AuditWriter, catalog_name: str = "") -> None:
    """Append the run summary to the audit ledger."""
    entry = AuditEntry(
        operation_id=report.operation_id,
        catalog=catalog_name,
        provider=report.provider,
        force_reinstall=report.force_reinstall,
        status=report.status,
        packages_total=report.total,
        packages_success=report.success_count,
        packages_updated=report.updated_count,
        packages_skipped=report.skipped_count,
        packages_failed=report.failed_count,
        failed_packages=report.failed_names(),
    )
    audit_writer.write(entry)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
