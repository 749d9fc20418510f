"""
Domain models — types for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import Catalog, CatalogEntry, VersionSpec, OutcomeRecord
"""

from provisioner.core.models.catalog import Catalog, CatalogEntry, ProviderSettings
from provisioner.core.models.outcome import Action, OutcomeKind, OutcomeRecord
from provisioner.core.models.state import ABSENT, Absent, InstalledState, Present
from provisioner.core.models.version import InvalidVersion, VersionSpec

__all__ = [
    # catalog.py
    "Catalog",
    "CatalogEntry",
    "ProviderSettings",
    # outcome.py
    "Action",
    "OutcomeKind",
    "OutcomeRecord",
    # state.py
    "ABSENT",
    "Absent",
    "InstalledState",
    "Present",
    # version.py
    "InvalidVersion",
    "VersionSpec",
]
