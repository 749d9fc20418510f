"""
Retrying provider — wrap a provider with exponential backoff.

The reconciler never retries. Retry policy lives here, as a decorator
around any provider, so it can be switched on per catalog without the
reconcile loop knowing.

Only mutating calls are retried. ``query`` is read-only and cheap to
fail, and ConsistencyError signals a provider bug that a retry would
only hide.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable

from provisioner.adapters.base import PackageProvider
from provisioner.core.errors import ConsistencyError, ProviderError
from provisioner.core.models.state import InstalledState
from provisioner.core.models.version import VersionSpec

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """Delay before retry number ``attempt`` (1-based), with up to 30% jitter."""
    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
    jitter = random.uniform(0, delay * 0.3)
    return delay + jitter


class RetryingProvider(PackageProvider):
    """Retry install/upgrade/uninstall on ProviderError.

    Args:
        inner: The provider doing the real work.
        retries: Additional attempts after the first failure.
        base_delay: Delay before the first retry, doubled each time.
        max_delay: Upper bound for a single delay (before jitter).
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        inner: PackageProvider,
        retries: int = 2,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._inner = inner
        self._retries = max(0, retries)
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep

    @property
    def name(self) -> str:
        return self._inner.name

    @property
    def inner(self) -> PackageProvider:
        return self._inner

    def is_available(self) -> bool:
        return self._inner.is_available()

    def prepare(self) -> None:
        self._inner.prepare()

    def query(self, name: str) -> InstalledState:
        return self._inner.query(name)

    def install(self, name: str, min_version: VersionSpec) -> None:
        self._with_retry("install", name, lambda: self._inner.install(name, min_version))

    def upgrade(self, name: str) -> None:
        self._with_retry("upgrade", name, lambda: self._inner.upgrade(name))

    def uninstall(self, name: str) -> None:
        self._with_retry("uninstall", name, lambda: self._inner.uninstall(name))

    def _with_retry(self, operation: str, name: str, call: Callable[[], None]) -> None:
        attempt = 0
        while True:
            try:
                call()
                return
            except ConsistencyError:
                raise
            except ProviderError as e:
                if attempt >= self._retries:
                    if attempt:
                        logger.warning(
                            "%s %s exhausted after %d attempts: %s",
                            operation, name, attempt + 1, e,
                        )
                    raise
                attempt += 1
                delay = backoff_delay(attempt, self._base_delay, self._max_delay)
                logger.info(
                    "%s %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    operation, name, attempt, self._retries + 1, delay, e,
                )
                self._sleep(delay)
