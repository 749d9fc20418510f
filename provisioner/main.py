"""
Package Provisioner — CLI entrypoint.

Usage:
    python -m provisioner.main --help
    python -m provisioner.main reconcile
    python -m provisioner.main catalog check
"""

from __future__ import annotations

import json
import os
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)

_KIND_COLORS = {
    "success": "green",
    "updated": "cyan",
    "skipped": "yellow",
    "failed": "red",
}

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


@click.group()
@click.version_option(version=__version__, prog_name="provisioner")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to catalog.yml (default: auto-detect).",
)
@click.option(
    "--transcript",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Write a full log of the run to this file (or set {ENV_FILE}).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    transcript: str | None,
) -> None:
    """Package Provisioner — converge installed packages to a catalog."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=transcript or os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
        quiet_third_party=not debug,
    )


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """First Ctrl-C stops the run after the current package; the second aborts."""
    event = threading.Event()

    def _handler(signum, frame):
        if event.is_set():
            raise KeyboardInterrupt
        click.secho(
            "\n⚠️  Interrupted, stopping after the current package (Ctrl-C again to abort)",
            fg="yellow",
            err=True,
        )
        event.set()

    try:
        previous = signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # Not the main thread: no handler, cancellation never fires.
        previous = None

    try:
        yield event
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


@cli.command()
@click.option(
    "--uninstall-existing",
    is_flag=True,
    help="Uninstall present packages and install them again.",
)
@click.option(
    "--skip-prereq-setup",
    is_flag=True,
    help="Skip provider prerequisite setup (e.g. bootstrapping pip).",
)
@click.option("--mock", is_flag=True, help="Use the in-memory provider (nothing is installed).")
@click.option("--dry-run", is_flag=True, help="Show what would be done without doing it.")
@click.option("--no-audit", is_flag=True, help="Don't record the run in the audit ledger.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def reconcile(
    ctx: click.Context,
    uninstall_existing: bool,
    skip_prereq_setup: bool,
    mock: bool,
    dry_run: bool,
    no_audit: bool,
    as_json: bool,
) -> None:
    """Install or upgrade every catalog package to its minimum version.

    Failed packages are reported but do not change the exit code; only a
    run that cannot start (bad catalog, provider unavailable) exits 1.

    Examples:

        provisioner reconcile

        provisioner reconcile --uninstall-existing

        provisioner reconcile --dry-run
    """
    from provisioner.core.use_cases.reconcile import run_reconcile

    with _cancel_on_interrupt() as cancel:
        result = run_reconcile(
            config_path=ctx.obj.get("config_path"),
            force_reinstall=uninstall_existing,
            skip_prereq_setup=skip_prereq_setup,
            mock_mode=mock,
            dry_run=dry_run,
            audit=not no_audit,
            cancel=cancel,
        )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    catalog = result.catalog
    assert catalog is not None
    catalog_label = catalog.name or (result.catalog_path.name if result.catalog_path else "catalog")
    mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""

    if result.planned is not None:
        click.secho(f"\n📋 {mode_label}{catalog_label}", fg="cyan", bold=True)
        click.echo(f"   Packages: {len(result.planned)}")
        click.echo()
        for item in result.planned:
            _echo_planned(item)
        click.echo()
        return

    report = result.report
    assert report is not None

    from provisioner.core.engine.rendering import format_record, summary_line

    click.secho(f"\n⚡ {mode_label}{catalog_label}", fg="cyan", bold=True)
    click.echo(f"   Operation: {report.operation_id}")
    click.echo(f"   Provider:  {report.provider}")
    if report.force_reinstall:
        click.secho("   Mode: reinstall (uninstall existing first)", fg="yellow")
    click.echo()

    for kind, records in report.grouped().items():
        if not records:
            continue
        color = _KIND_COLORS.get(kind.value, "white")
        click.secho(f"   {kind.value.capitalize()} ({len(records)})", fg=color, bold=True)
        for record in records:
            click.secho(f"     {format_record(record)}", fg=color)
            if ctx.obj.get("verbose") and record.duration_ms:
                click.echo(f"       │ {record.duration_ms}ms")

    click.echo()
    click.secho(
        f"   {summary_line(report)}",
        fg=_STATUS_COLORS.get(report.status, "white"),
        bold=True,
    )
    if result.audit_path and not ctx.obj.get("quiet"):
        click.secho(f"   📝 Recorded in {result.audit_path}", fg="cyan")
    click.echo()


def _echo_planned(item) -> None:
    if item.error:
        click.secho(f"   ✗ {item.name} ", fg="red", nl=False)
        click.echo(item.error)
        return

    installed = str(item.state.version) if item.state is not None and item.state.present else "absent"
    color = "green" if item.action.value == "skip" else "yellow"
    click.secho(f"   • {item.name} ", fg=color, nl=False)
    click.echo(f"{installed} (>= {item.min_version}) → {item.action.value}")


@cli.command()
@click.option("--mock", is_flag=True, help="Query the in-memory provider.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, mock: bool, as_json: bool) -> None:
    """Show installed state and pending action per catalog package."""
    from provisioner.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"), mock_mode=mock)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    catalog = result.catalog
    assert catalog is not None

    if not ctx.obj.get("quiet"):
        click.secho(f"\n📋 {catalog.name or 'catalog'}", fg="cyan", bold=True)
        click.echo(f"   Provider: {result.provider}")
        click.echo()

    click.secho(f"   Packages: {len(result.entries)}", fg="white", bold=True)
    for item in result.entries:
        _echo_planned(item)

    click.echo()
    click.echo(
        f"   {result.satisfied_count} satisfied, "
        f"{result.pending_count} pending, "
        f"{result.error_count} errors"
    )

    if result.last_run:
        run = result.last_run
        click.echo()
        click.secho("   Last run:", fg="white", bold=True)
        click.echo(f"     {run.operation_id} — ", nl=False)
        click.secho(run.status, fg=_STATUS_COLORS.get(run.status, "white"))
        click.echo(f"     at {run.timestamp}")

    click.echo()


@cli.group()
def catalog() -> None:
    """Catalog commands."""


@catalog.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def catalog_check(ctx: click.Context, as_json: bool) -> None:
    """Validate catalog.yml."""
    from provisioner.core.use_cases.catalog_check import check_catalog

    result = check_catalog(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.catalog is not None
        click.secho("✅ Catalog is valid", fg="green", bold=True)
        if result.catalog.name:
            click.echo(f"   Catalog: {result.catalog.name}")
        click.echo(f"   Provider: {result.catalog.provider.name}")
        click.echo(f"   Packages: {len(result.catalog.packages)}")
    else:
        click.secho("❌ Catalog errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


@cli.command()
@click.option("-n", "limit", default=10, type=int, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show recent reconcile runs from the audit ledger."""
    from provisioner.core.config.loader import catalog_root, find_catalog_file
    from provisioner.core.persistence.audit import AuditWriter, default_audit_path

    config_path: Path | None = ctx.obj.get("config_path") or find_catalog_file()
    root = catalog_root(config_path) if config_path else Path.cwd()
    entries = AuditWriter(default_audit_path(root)).read_recent(limit)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No runs recorded yet.")
        return

    click.secho(f"\n📜 Last {len(entries)} run(s)", fg="cyan", bold=True)
    click.echo()
    for entry in reversed(entries):
        click.secho(f"   {entry.status:<8}", fg=_STATUS_COLORS.get(entry.status, "white"), nl=False)
        reinstall = " [reinstall]" if entry.force_reinstall else ""
        click.echo(
            f" {entry.operation_id}  {entry.timestamp}{reinstall}  "
            f"{entry.packages_success}✓ {entry.packages_updated}↑ "
            f"{entry.packages_skipped}⊘ {entry.packages_failed}✗"
        )
        if entry.failed_packages:
            click.echo(f"            failed: {', '.join(entry.failed_packages)}")
    click.echo()


if __name__ == "__main__":
    cli()
