"""Providers — package manager bindings.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import PackageProvider
from provisioner.adapters.fallback import FallbackProvider
from provisioner.adapters.mock import MockProvider
from provisioner.adapters.pip import PipProvider
from provisioner.adapters.registry import ProviderRegistry, default_registry
from provisioner.adapters.retrying import RetryingProvider

__all__ = [
    "FallbackProvider",
    "MockProvider",
    "PackageProvider",
    "PipProvider",
    "ProviderRegistry",
    "RetryingProvider",
    "default_registry",
]
