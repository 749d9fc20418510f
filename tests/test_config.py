"""
Tests for the catalog loader and the catalog check use case.
"""

from pathlib import Path

import pytest

from provisioner.adapters.mock import MockProvider
from provisioner.adapters.registry import ProviderRegistry
from provisioner.core.config import loader
from provisioner.core.config.loader import (
    ConfigError,
    catalog_root,
    find_catalog_file,
    load_catalog,
)
from provisioner.core.errors import FatalSetupError
from provisioner.core.use_cases.catalog_check import check_catalog

VALID = """\
    name: workstation
    provider:
      name: mock
      retries: 2
      options:
        mock:
          installed:
            requests: "2.0"
    packages:
      - name: requests
        min_version: "2.31"
      - name: click
        version: "8.1"
"""


# ── Discovery ────────────────────────────────────────────────────────


class TestFindCatalogFile:
    def test_in_start_dir(self, write_catalog, tmp_path: Path):
        path = write_catalog(VALID)
        assert find_catalog_file(tmp_path) == path.resolve()

    def test_walks_up(self, write_catalog, tmp_path: Path):
        path = write_catalog(VALID)
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_catalog_file(nested) == path.resolve()

    def test_not_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(loader, "CATALOG_FILE", "no-such-catalog.yml")
        assert find_catalog_file(tmp_path) is None

    def test_catalog_root(self, write_catalog, tmp_path: Path):
        assert catalog_root(write_catalog(VALID)) == tmp_path.resolve()


# ── Loading ──────────────────────────────────────────────────────────


class TestLoadCatalog:
    def test_valid(self, write_catalog):
        catalog = load_catalog(write_catalog(VALID))
        assert catalog.name == "workstation"
        assert catalog.provider.name == "mock"
        assert catalog.provider.retries == 2
        assert [e.name for e in catalog.packages] == ["requests", "click"]
        assert str(catalog.packages[1].min_version) == "8.1"

    def test_empty_file(self, write_catalog):
        catalog = load_catalog(write_catalog(""))
        assert catalog.packages == []

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_catalog(tmp_path / "nope.yml")

    def test_config_error_is_fatal(self, tmp_path: Path):
        with pytest.raises(FatalSetupError):
            load_catalog(tmp_path / "nope.yml")

    def test_invalid_yaml(self, write_catalog):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_catalog(write_catalog("packages: [unclosed\n"))

    def test_non_mapping_root(self, write_catalog):
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_catalog(write_catalog("- a\n- b\n"))

    def test_bad_version(self, write_catalog):
        path = write_catalog("""\
            packages:
              - name: requests
                min_version: "latest"
        """)
        with pytest.raises(ConfigError, match="min_version"):
            load_catalog(path)

    def test_unquoted_float_version(self, write_catalog):
        path = write_catalog("""\
            packages:
              - name: requests
                min_version: 1.10
        """)
        with pytest.raises(ConfigError, match="quote"):
            load_catalog(path)

    def test_int_version(self, write_catalog):
        path = write_catalog("""\
            packages:
              - name: requests
                min_version: 2
        """)
        assert str(load_catalog(path).packages[0].min_version) == "2"

    def test_missing_version(self, write_catalog):
        path = write_catalog("""\
            packages:
              - name: requests
        """)
        with pytest.raises(ConfigError):
            load_catalog(path)

    def test_duplicates_rejected(self, write_catalog):
        path = write_catalog("""\
            packages:
              - name: a
                min_version: "1"
              - name: a
                min_version: "2"
        """)
        with pytest.raises(ConfigError, match="Duplicate package names.*a"):
            load_catalog(path)


# ── Catalog check ────────────────────────────────────────────────────


class TestCheckCatalog:
    def test_valid(self, write_catalog):
        result = check_catalog(write_catalog(VALID))
        assert result.valid
        assert result.errors == []
        data = result.to_dict()
        assert data["package_count"] == 2
        assert data["catalog_name"] == "workstation"

    def test_load_error(self, write_catalog):
        result = check_catalog(write_catalog("- nope\n"))
        assert not result.valid
        assert result.errors

    def test_empty_warns(self, write_catalog):
        result = check_catalog(write_catalog("provider:\n  name: mock\n"))
        assert result.valid
        assert any("No packages" in w for w in result.warnings)

    def test_unknown_provider(self, write_catalog):
        path = write_catalog("""\
            provider:
              name: apt
              fallback: [pip]
            packages:
              - name: a
                min_version: "1"
        """)
        result = check_catalog(path)
        assert not result.valid
        assert any("Unknown provider 'apt'" in e for e in result.errors)

    def test_custom_registry(self, write_catalog):
        registry = ProviderRegistry()
        registry.register("apt", MockProvider)
        path = write_catalog("provider:\n  name: apt\npackages:\n  - {name: a, min_version: '1'}\n")
        assert check_catalog(path, registry=registry).valid

    def test_option_and_delay_warnings(self, write_catalog):
        path = write_catalog("""\
            provider:
              name: pip
              fallback: [pip]
              retry_base_delay: 10
              retry_max_delay: 1
              options:
                brew: {}
            packages:
              - name: a
                min_version: "1"
        """)
        result = check_catalog(path)
        assert result.valid
        assert len(result.warnings) == 3

    def test_missing_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            "provisioner.core.use_cases.catalog_check.find_catalog_file", lambda: None
        )
        result = check_catalog()
        assert not result.valid
        assert "No catalog.yml found." in result.errors
