"""
Report rendering — plain-text summary of an InstallReport.

Pure presentation: records are grouped by outcome kind in the order
Success, Updated, Skipped, Failed, with empty groups left out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from provisioner.core.models.outcome import OutcomeKind, OutcomeRecord

if TYPE_CHECKING:
    from provisioner.core.engine.reconciler import InstallReport

MARKERS = {
    OutcomeKind.SUCCESS: "✓",
    OutcomeKind.UPDATED: "↑",
    OutcomeKind.SKIPPED: "⊘",
    OutcomeKind.FAILED: "✗",
}


def format_record(record: OutcomeRecord) -> str:
    """One line for one record, without indentation."""
    marker = MARKERS[record.kind]
    if record.kind == OutcomeKind.UPDATED:
        return f"{marker} {record.name} {record.previous_version} → {record.version}"

    version = f" {record.version}" if record.version else ""
    detail = f"  {record.detail}" if record.detail else ""
    return f"{marker} {record.name}{version}{detail}"


def summary_line(report: InstallReport) -> str:
    return (
        f"Total {report.total}: "
        f"{report.success_count} success, "
        f"{report.updated_count} updated, "
        f"{report.skipped_count} skipped, "
        f"{report.failed_count} failed"
    )


def render_report(report: InstallReport) -> str:
    """Render the grouped text summary."""
    header = f"Provisioning report {report.operation_id}"
    if report.provider:
        header += f" (provider {report.provider})"
    if report.force_reinstall:
        header += " [reinstall]"

    lines = [header, ""]
    for kind, records in report.grouped().items():
        if not records:
            continue
        lines.append(f"{kind.value.capitalize()} ({len(records)})")
        lines.extend(f"  {format_record(r)}" for r in records)

    if report.total:
        lines.append("")
    lines.append(summary_line(report))
    return "\n".join(lines)
