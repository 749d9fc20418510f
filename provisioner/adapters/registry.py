"""
Provider registry — central construction point for providers.

The registry maps provider names (as written in catalog.yml) to
factories, and builds the effective provider for a run: the primary
backend, any fallbacks, and the retry wrapper. The use cases never
construct providers directly — always through the registry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from provisioner.adapters.base import PackageProvider
from provisioner.adapters.fallback import FallbackProvider
from provisioner.adapters.mock import MockProvider
from provisioner.adapters.pip import PipProvider
from provisioner.adapters.retrying import RetryingProvider
from provisioner.core.errors import FatalSetupError
from provisioner.core.models.catalog import ProviderSettings

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., PackageProvider]


class ProviderRegistry:
    """Registry and builder for providers.

    Features:
        - Register/unregister provider factories by name
        - Mock mode: build a MockProvider whatever the catalog says
        - Build the configured provider chain from ProviderSettings
    """

    def __init__(self, mock_mode: bool = False):
        self._factories: dict[str, ProviderFactory] = {}
        self._mock_mode = mock_mode

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def register(self, name: str, factory: ProviderFactory) -> None:
        """Register a factory called with the provider's keyword options."""
        if name in self._factories:
            logger.warning("Overwriting existing provider: %s", name)
        self._factories[name] = factory
        logger.debug("Registered provider: %s", name)

    def unregister(self, name: str) -> None:
        self._factories.pop(name, None)

    def list_providers(self) -> list[str]:
        return list(self._factories.keys())

    def create(self, name: str, options: dict[str, Any] | None = None) -> PackageProvider:
        """Instantiate one provider by name.

        Raises:
            FatalSetupError: Unknown name or options the factory rejects.
        """
        factory = self._factories.get(name)
        if factory is None:
            known = ", ".join(sorted(self._factories)) or "none"
            raise FatalSetupError(f"Unknown provider '{name}'. Known providers: {known}")
        try:
            return factory(**(options or {}))
        except (TypeError, ValueError) as e:
            raise FatalSetupError(f"Invalid options for provider '{name}': {e}") from e

    def build(self, settings: ProviderSettings) -> PackageProvider:
        """Build the effective provider for a run.

        Raises:
            FatalSetupError: Unknown provider, bad options, or nothing available.
        """
        if self._mock_mode:
            try:
                return MockProvider(**settings.options.get("mock", {}))
            except (TypeError, ValueError) as e:
                raise FatalSetupError(f"Invalid options for provider 'mock': {e}") from e

        names = [settings.name, *settings.fallback]
        backends = [self.create(n, settings.options.get(n)) for n in names]

        provider: PackageProvider
        if len(backends) == 1:
            provider = backends[0]
        else:
            provider = FallbackProvider(backends)

        if not provider.is_available():
            raise FatalSetupError(f"Provider '{provider.name}' is not available on this system")

        if settings.retries > 0:
            provider = RetryingProvider(
                provider,
                retries=settings.retries,
                base_delay=settings.retry_base_delay,
                max_delay=settings.retry_max_delay,
            )

        logger.debug("Built provider %r", provider)
        return provider


def default_registry(mock_mode: bool = False) -> ProviderRegistry:
    """Registry with the built-in providers."""
    registry = ProviderRegistry(mock_mode=mock_mode)
    registry.register("pip", PipProvider)
    registry.register("mock", MockProvider)
    return registry
