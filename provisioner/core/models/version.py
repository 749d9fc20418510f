"""
VersionSpec — dotted numeric versions with zero-padded ordering.

Comparison is lexicographic over integer components, left to right.
The shorter side is padded with zeros first, so ``2.0 == 2.0.0`` and
``1.9.9 < 1.10.0``. Any number of components is allowed.

No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering
from itertools import zip_longest


class InvalidVersion(ValueError):
    """Raised when a string is not a dotted numeric version."""


@total_ordering
@dataclass(frozen=True, eq=False)
class VersionSpec:
    """An ordered, dotted numeric version such as ``16.0.24310.12000``."""

    parts: tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.parts:
            raise InvalidVersion("Version must have at least one component")
        if any(p < 0 for p in self.parts):
            raise InvalidVersion(f"Negative version component in {self.parts!r}")

    @classmethod
    def parse(cls, value: str | int | VersionSpec) -> VersionSpec:
        """Parse ``"1.2.3"``, ``"v1.2"`` or ``7`` into a VersionSpec.

        Floats are refused: YAML reads an unquoted ``1.10`` as ``1.1``,
        which would silently lower the requirement.
        """
        if isinstance(value, VersionSpec):
            return value
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise InvalidVersion(
                f"Version must be a string, got {type(value).__name__}: {value!r} "
                "(quote versions in YAML)"
            )
        if isinstance(value, int):
            return cls((value,))

        text = value.strip()
        if text[:1] in ("v", "V"):
            text = text[1:]
        if not text:
            raise InvalidVersion(f"Empty version string: {value!r}")

        parts = []
        for chunk in text.split("."):
            if not chunk.isdigit():
                raise InvalidVersion(f"Invalid version {value!r}: component {chunk!r} is not numeric")
            parts.append(int(chunk))
        return cls(tuple(parts))

    @property
    def _key(self) -> tuple[int, ...]:
        # Trailing zeros carry no ordering information.
        parts = list(self.parts)
        while len(parts) > 1 and parts[-1] == 0:
            parts.pop()
        return tuple(parts)

    def _padded(self, other: VersionSpec) -> tuple[tuple[int, ...], tuple[int, ...]]:
        pairs = list(zip_longest(self.parts, other.parts, fillvalue=0))
        return tuple(a for a, _ in pairs), tuple(b for _, b in pairs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionSpec):
            return NotImplemented
        mine, theirs = self._padded(other)
        return mine == theirs

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionSpec):
            return NotImplemented
        mine, theirs = self._padded(other)
        return mine < theirs

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        return ".".join(str(p) for p in self.parts)

    def __repr__(self) -> str:
        return f"VersionSpec({str(self)!r})"
