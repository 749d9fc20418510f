"""
Catalog model — the desired state, loaded from catalog.yml.

The catalog is the canonical truth about which packages must be
present and at which minimum version. If a package isn't declared
here, the provisioner never touches it.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

from provisioner.core.models.version import VersionSpec


class CatalogEntry(BaseModel):
    """One desired package: a unique name and an inclusive version floor."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    min_version: VersionSpec = Field(
        validation_alias=AliasChoices("min_version", "version"),
    )

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Package name must not be blank")
        return v

    @field_validator("min_version", mode="before")
    @classmethod
    def _parse_version(cls, v: Any) -> VersionSpec:
        return VersionSpec.parse(v)

    @field_serializer("min_version")
    def _dump_version(self, v: VersionSpec) -> str:
        return str(v)


class ProviderSettings(BaseModel):
    """Which provider to build and how to wrap it.

    ``fallback`` lists extra providers tried in order after the primary
    one. ``retries`` is the number of additional attempts for mutating
    calls; 0 disables the retry wrapper.
    """

    name: str = "pip"
    fallback: list[str] = Field(default_factory=list)
    retries: int = Field(0, ge=0)
    retry_base_delay: float = Field(1.0, ge=0.0)
    retry_max_delay: float = Field(30.0, ge=0.0)
    options: dict[str, Any] = Field(default_factory=dict)


class Catalog(BaseModel):
    """Root catalog document."""

    name: str = ""
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    packages: list[CatalogEntry] = Field(default_factory=list)

    def duplicate_names(self) -> list[str]:
        """Package names declared more than once, sorted."""
        names = [e.name for e in self.packages]
        return sorted({n for n in names if names.count(n) > 1})
