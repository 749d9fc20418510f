"""
Error taxonomy — what can go wrong during provisioning.

Two scopes:

    Per-entry   QueryError, InstallError, UpgradeError, UninstallError,
                ConsistencyError. Raised by providers, caught by the
                reconciler at the entry boundary and turned into a
                Failed outcome record. They never abort a run.

    Run-level   FatalSetupError. The catalog is invalid or no provider
                can be built. Raised before any entry is processed and
                propagated to the caller.
"""

from __future__ import annotations


class ProvisionerError(Exception):
    """Base class for all provisioner exceptions."""


class ProviderError(ProvisionerError):
    """A provider operation failed for one package.

    Args:
        message: Human-readable failure description.
        package: Package name the operation targeted.
        operation: Provider operation (query, install, upgrade, uninstall).
    """

    operation = ""

    def __init__(self, message: str, package: str = "", operation: str | None = None):
        super().__init__(message)
        self.package = package
        if operation is not None:
            self.operation = operation

    @property
    def kind(self) -> str:
        """Tag used in outcome records (the exception class name)."""
        return type(self).__name__


class QueryError(ProviderError):
    """The installed state of a package could not be determined."""

    operation = "query"


class InstallError(ProviderError):
    """Installing a package failed."""

    operation = "install"


class UpgradeError(ProviderError):
    """Upgrading a package failed."""

    operation = "upgrade"


class UninstallError(ProviderError):
    """Removing a package failed."""

    operation = "uninstall"


class ConsistencyError(ProviderError):
    """The provider reported success but the post-condition does not hold.

    Kept distinct from InstallError: it points at a provider bug, not
    at an ordinary installation failure.
    """

    operation = "verify"


class FatalSetupError(ProvisionerError):
    """The run cannot start: bad catalog, or provider unavailable."""
