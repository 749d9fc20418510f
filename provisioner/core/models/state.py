"""
InstalledState — what a provider reports for one package.

A closed variant: a package is either ``Absent`` or ``Present`` at a
concrete version. Query failures are not a state; providers raise
QueryError for those.
"""

from __future__ import annotations

from dataclasses import dataclass

from provisioner.core.models.version import VersionSpec


@dataclass(frozen=True)
class Absent:
    """The package is not installed."""

    @property
    def present(self) -> bool:
        return False

    def __str__(self) -> str:
        return "absent"


@dataclass(frozen=True)
class Present:
    """The package is installed at ``version``."""

    version: VersionSpec

    @property
    def present(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"present {self.version}"


InstalledState = Absent | Present

ABSENT = Absent()
