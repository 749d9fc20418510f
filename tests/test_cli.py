"""
Tests for CLI commands — reconcile, status, catalog check, history.
"""

import json
import textwrap
from pathlib import Path

from click.testing import CliRunner

from provisioner.main import cli

CATALOG = textwrap.dedent("""\
    name: dev-box
    provider:
      name: mock
      options:
        mock:
          installed:
            click: "7.0"
          latest:
            click: "8.1.7"
    packages:
      - name: requests
        min_version: "2.31"
      - name: click
        min_version: "8.1"
""")


def _make_catalog(tmp_path: Path, content: str = CATALOG) -> Path:
    config = tmp_path / "catalog.yml"
    config.write_text(content)
    return config


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Package Provisioner" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_transcript(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        transcript = tmp_path / "logs" / "transcript.log"
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["--config", str(config), "--transcript", str(transcript), "reconcile", "--no-audit"],
        )
        assert result.exit_code == 0
        assert "requests" in transcript.read_text(encoding="utf-8")


class TestReconcileCommand:
    """Tests for the reconcile command."""

    def test_reconcile(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "reconcile"])
        assert result.exit_code == 0
        assert "Success (1)" in result.output
        assert "Updated (1)" in result.output
        assert "↑ click 7.0 → 8.1.7" in result.output
        assert "Total 2: 1 success, 1 updated, 0 skipped, 0 failed" in result.output
        assert (tmp_path / ".state" / "audit.ndjson").is_file()

    def test_reconcile_json(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "reconcile", "--json", "--no-audit"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["report"]["total"] == 2
        assert data["report"]["status"] == "ok"
        assert not (tmp_path / ".state").exists()

    def test_failed_entries_still_exit_zero(self, tmp_path: Path):
        config = _make_catalog(tmp_path, CATALOG.replace('click: "8.1.7"', 'click: "7.5"'))
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", "--config", str(config), "reconcile", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["report"]["failed"] == 1
        assert data["report"]["status"] == "partial"

    def test_uninstall_existing(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(
            cli, ["--config", str(config), "reconcile", "--uninstall-existing", "--json", "--no-audit"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["report"]["force_reinstall"] is True
        assert data["report"]["records"][1]["action"] == "reinstall"

    def test_dry_run(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "reconcile", "--dry-run"])
        assert result.exit_code == 0
        assert "[dry-run]" in result.output
        assert "requests absent (>= 2.31) → install" in result.output
        assert "click 7.0 (>= 8.1) → upgrade" in result.output
        assert not (tmp_path / ".state").exists()

    def test_mock_overrides_provider(self, tmp_path: Path):
        config = _make_catalog(tmp_path, "provider:\n  name: pip\npackages:\n  - {name: a, min_version: '1'}\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "reconcile", "--mock", "--no-audit"])
        assert result.exit_code == 0
        assert "[mock]" in result.output
        assert "✓ a 1" in result.output

    def test_invalid_catalog_exits_one(self, tmp_path: Path):
        config = _make_catalog(tmp_path, "packages:\n  - name: a\n    min_version: nope\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "reconcile"])
        assert result.exit_code == 1
        assert "❌" in result.output

    def test_invalid_catalog_json_exits_one(self, tmp_path: Path):
        config = _make_catalog(tmp_path, "provider:\n  name: apt\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "reconcile", "--json"])
        assert result.exit_code == 1
        assert "Unknown provider" in json.loads(result.output)["error"]

    def test_missing_catalog(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.yml"), "reconcile"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestStatusCommand:
    """Tests for the status command."""

    def test_status(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "status"])
        assert result.exit_code == 0
        assert "dev-box" in result.output
        assert "0 satisfied, 2 pending, 0 errors" in result.output

    def test_status_json(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "status", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [p["action"] for p in data["packages"]] == ["install", "upgrade"]

    def test_status_shows_last_run(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        runner.invoke(cli, ["--config", str(config), "reconcile"])
        result = runner.invoke(cli, ["--config", str(config), "status"])
        assert result.exit_code == 0
        assert "Last run:" in result.output

    def test_status_missing_config(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.yml"), "status"])
        assert result.exit_code == 1


class TestCatalogCheckCommand:
    """Tests for the catalog check command."""

    def test_valid(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "catalog", "check"])
        assert result.exit_code == 0
        assert "Catalog is valid" in result.output
        assert "Packages: 2" in result.output

    def test_valid_json(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "catalog", "check", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["valid"] is True

    def test_warnings_shown(self, tmp_path: Path):
        config = _make_catalog(tmp_path, "name: empty\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "catalog", "check"])
        assert result.exit_code == 0
        assert "Warnings" in result.output

    def test_duplicates_fail(self, tmp_path: Path):
        content = textwrap.dedent("""\
            packages:
              - name: a
                min_version: "1"
              - name: a
                min_version: "2"
        """)
        config = _make_catalog(tmp_path, content)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "catalog", "check"])
        assert result.exit_code == 1
        assert "Duplicate package names" in result.output

    def test_errors_json(self, tmp_path: Path):
        config = _make_catalog(tmp_path, "provider:\n  name: apt\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "catalog", "check", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["valid"] is False


class TestHistoryCommand:
    """Tests for the history command."""

    def test_empty(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "history"])
        assert result.exit_code == 0
        assert "No runs recorded yet." in result.output

    def test_after_runs(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        for _ in range(3):
            runner.invoke(cli, ["--config", str(config), "reconcile"])

        result = runner.invoke(cli, ["--config", str(config), "history", "-n", "2", "--json"])
        assert result.exit_code == 0
        entries = json.loads(result.output)
        assert len(entries) == 2
        assert all(e["catalog"] == "dev-box" for e in entries)

    def test_text_output(self, tmp_path: Path):
        config = _make_catalog(tmp_path)
        runner = CliRunner()
        runner.invoke(cli, ["--config", str(config), "reconcile"])
        result = runner.invoke(cli, ["--config", str(config), "history"])
        assert result.exit_code == 0
        assert "Last 1 run(s)" in result.output
        assert "ok" in result.output
