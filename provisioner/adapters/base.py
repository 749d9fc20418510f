"""
Provider base — the protocol contract between the reconciler and a
package manager.

The reconciler only talks to package managers through this interface,
never directly to pip, apt, registries or anything else.

Contract:
    - ``query`` never mutates state. A missing package is ``Absent``,
      not an error; QueryError means "could not tell".
    - ``install`` / ``upgrade`` / ``uninstall`` return None on success
      and raise the matching ProviderError subclass on failure.
    - Mutating calls are safe for a caller to retry. The reconciler
      itself never retries (see RetryingProvider).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from provisioner.core.models.state import InstalledState
from provisioner.core.models.version import VersionSpec


class PackageProvider(ABC):
    """Abstract base class for all package providers.

    To create a new provider:
        1. Subclass PackageProvider
        2. Implement name, is_available, query, install, upgrade, uninstall
        3. Register a factory in the ProviderRegistry
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The provider identifier (e.g., 'pip', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying package manager can be used.

        Should be fast and never raise.
        """

    def prepare(self) -> None:
        """Prerequisite setup before a run (bootstrap, trust, policy).

        Default: nothing to do. Raise FatalSetupError if the
        environment cannot be made ready.
        """

    @abstractmethod
    def query(self, name: str) -> InstalledState:
        """Return the installed state of ``name``. Raises QueryError."""

    @abstractmethod
    def install(self, name: str, min_version: VersionSpec) -> None:
        """Install ``name`` at ``min_version`` or newer. Raises InstallError."""

    @abstractmethod
    def upgrade(self, name: str) -> None:
        """Upgrade ``name`` to the newest available version. Raises UpgradeError."""

    @abstractmethod
    def uninstall(self, name: str) -> None:
        """Remove ``name``. Raises UninstallError."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
