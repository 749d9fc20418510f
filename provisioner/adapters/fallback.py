"""
Fallback provider — an ordered chain of backends behind one interface.

Some environments expose the same packages through more than one
mechanism (a primary package API and a secondary package manager).
This provider tries each available backend in order, so the
reconciler still sees a single provider and a single Ok/error result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from provisioner.adapters.base import PackageProvider
from provisioner.core.errors import (
    ConsistencyError,
    InstallError,
    ProviderError,
    QueryError,
    UninstallError,
    UpgradeError,
)
from provisioner.core.models.state import ABSENT, InstalledState
from provisioner.core.models.version import VersionSpec

logger = logging.getLogger(__name__)

_ERRORS: dict[str, type[ProviderError]] = {
    "install": InstallError,
    "upgrade": UpgradeError,
    "uninstall": UninstallError,
}


class FallbackProvider(PackageProvider):
    """Try backends in order until one succeeds.

    Unavailable backends are skipped. When every backend fails, the
    last error is raised.
    """

    def __init__(self, backends: Sequence[PackageProvider]):
        if not backends:
            raise ValueError("FallbackProvider needs at least one backend")
        self._backends = list(backends)

    @property
    def name(self) -> str:
        return "+".join(b.name for b in self._backends)

    def is_available(self) -> bool:
        return any(self._safe_available(b) for b in self._backends)

    def prepare(self) -> None:
        for backend in self._active():
            backend.prepare()

    def query(self, name: str) -> InstalledState:
        """First backend reporting Present wins.

        Absent only when every active backend answered. If none reports
        Present and any backend failed, that failure is raised: the package
        may live in the backend that could not answer.
        """
        last_error: ProviderError | None = None
        answered = False
        for backend in self._active():
            try:
                state = backend.query(name)
            except ProviderError as e:
                logger.debug("%s: query %s failed: %s", backend.name, name, e)
                last_error = e
                continue
            answered = True
            if state.present:
                return state

        if last_error is not None:
            raise last_error
        if answered:
            return ABSENT
        raise QueryError("No available backend", package=name)

    def install(self, name: str, min_version: VersionSpec) -> None:
        self._first_success("install", name, lambda b: b.install(name, min_version))

    def upgrade(self, name: str) -> None:
        self._first_success("upgrade", name, lambda b: b.upgrade(name))

    def uninstall(self, name: str) -> None:
        self._first_success("uninstall", name, lambda b: b.uninstall(name))

    # ── Helpers ─────────────────────────────────────────────────

    def _active(self) -> list[PackageProvider]:
        return [b for b in self._backends if self._safe_available(b)]

    @staticmethod
    def _safe_available(backend: PackageProvider) -> bool:
        try:
            return backend.is_available()
        except Exception:
            return False

    def _first_success(
        self,
        operation: str,
        name: str,
        call: Callable[[PackageProvider], None],
    ) -> None:
        last_error: ProviderError | None = None
        for backend in self._active():
            try:
                call(backend)
            except ConsistencyError:
                raise
            except ProviderError as e:
                logger.info("%s: %s %s failed, trying next backend: %s", backend.name, operation, name, e)
                last_error = e
                continue
            logger.debug("%s: %s %s ok", backend.name, operation, name)
            return

        if last_error is not None:
            raise last_error
        raise _ERRORS[operation](f"No available backend for {operation}", package=name)
