"""
Mock provider — in-memory test double for all provider operations.

Used in mock mode and in tests to simulate a package manager without
touching the system. Configurable per operation and per package to
fail, raise arbitrary exceptions, or lie about a successful install.
"""

from __future__ import annotations

from provisioner.adapters.base import PackageProvider
from provisioner.core.errors import (
    FatalSetupError,
    InstallError,
    ProviderError,
    QueryError,
    UninstallError,
    UpgradeError,
)
from provisioner.core.models.state import ABSENT, InstalledState, Present
from provisioner.core.models.version import VersionSpec

_ERRORS: dict[str, type[ProviderError]] = {
    "query": QueryError,
    "install": InstallError,
    "upgrade": UpgradeError,
    "uninstall": UninstallError,
}

MUTATING_OPERATIONS = frozenset({"install", "upgrade", "uninstall"})


class MockProvider(PackageProvider):
    """In-memory package manager.

    Args:
        provider_name: Name reported by ``name``.
        available: Value returned by ``is_available``.
        installed: Initial installed packages, name → version string.
        latest: Newest version the "registry" offers, name → version.
            Install picks it when it satisfies the floor; upgrade moves
            to it. Packages without an entry install at the floor and
            upgrade to nothing newer.
    """

    def __init__(
        self,
        provider_name: str = "mock",
        available: bool = True,
        installed: dict[str, str] | None = None,
        latest: dict[str, str] | None = None,
    ):
        self._name = provider_name
        self._available = available
        self.installed: dict[str, VersionSpec] = {
            k: VersionSpec.parse(v) for k, v in (installed or {}).items()
        }
        self.latest: dict[str, VersionSpec] = {
            k: VersionSpec.parse(v) for k, v in (latest or {}).items()
        }
        self._failures: dict[tuple[str, str], Exception] = {}
        self._ghost_installs: set[str] = set()
        self._prepare_error: str | None = None
        self._call_log: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[str, str]]:
        """Every call received, as (operation, package) pairs."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_for(self, package: str) -> list[str]:
        """Operations invoked for one package, in order."""
        return [op for op, name in self._call_log if name == package]

    def mutating_calls(self, package: str | None = None) -> list[tuple[str, str]]:
        """Install/upgrade/uninstall calls, optionally for one package."""
        return [
            (op, name)
            for op, name in self._call_log
            if op in MUTATING_OPERATIONS and (package is None or name == package)
        ]

    def is_available(self) -> bool:
        return self._available

    # ── Configuration ───────────────────────────────────────────

    def set_failure(self, operation: str, package: str, error: str = "Mock failure") -> None:
        """Make ``operation`` on ``package`` raise its ProviderError type."""
        exc_type = _ERRORS[operation]
        self._failures[(operation, package)] = exc_type(error, package=package)

    def set_exception(self, operation: str, package: str, exc: Exception) -> None:
        """Make ``operation`` on ``package`` raise an arbitrary exception."""
        self._failures[(operation, package)] = exc

    def set_ghost_install(self, package: str) -> None:
        """Report install success for ``package`` without installing it."""
        self._ghost_installs.add(package)

    def set_prepare_failure(self, error: str = "Mock prerequisites missing") -> None:
        self._prepare_error = error

    def reset(self) -> None:
        """Clear call log and injected failures."""
        self._call_log.clear()
        self._failures.clear()
        self._ghost_installs.clear()
        self._prepare_error = None

    # ── Operations ──────────────────────────────────────────────

    def prepare(self) -> None:
        self._call_log.append(("prepare", ""))
        if self._prepare_error:
            raise FatalSetupError(self._prepare_error)

    def query(self, name: str) -> InstalledState:
        self._record("query", name)
        version = self.installed.get(name)
        if version is None:
            return ABSENT
        return Present(version)

    def install(self, name: str, min_version: VersionSpec) -> None:
        self._record("install", name)
        if name in self._ghost_installs:
            return
        candidate = self.latest.get(name, min_version)
        if candidate < min_version:
            raise InstallError(
                f"No version of {name} satisfies >= {min_version} (newest is {candidate})",
                package=name,
            )
        self.installed[name] = candidate

    def upgrade(self, name: str) -> None:
        self._record("upgrade", name)
        current = self.installed.get(name)
        if current is None:
            raise UpgradeError(f"{name} is not installed", package=name)
        newest = self.latest.get(name)
        if newest is not None and newest > current:
            self.installed[name] = newest

    def uninstall(self, name: str) -> None:
        self._record("uninstall", name)
        if name not in self.installed:
            raise UninstallError(f"{name} is not installed", package=name)
        del self.installed[name]

    def _record(self, operation: str, name: str) -> None:
        self._call_log.append((operation, name))
        exc = self._failures.get((operation, name))
        if exc is not None:
            raise exc
