"""
Action and OutcomeRecord models — the reconcile result contract.

An Action is what the reconciler decided to do for one catalog entry.
An OutcomeRecord is what happened. Exactly one record is produced per
entry; failures are captured here, never raised out of the run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(StrEnum):
    """Per-entry action, derived from installed state and the version floor."""

    INSTALL = "install"
    UPGRADE = "upgrade"
    REINSTALL = "reinstall"
    SKIP = "skip"


class OutcomeKind(StrEnum):
    """Outcome classification. Declaration order is the report order."""

    SUCCESS = "success"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class OutcomeRecord(BaseModel):
    """Result of reconciling one catalog entry.

    ``action`` is None when no action could be chosen (the query failed
    or the run was cancelled first). ``error_kind`` names the error
    class for failures, e.g. ``ConsistencyError``.
    """

    name: str
    kind: OutcomeKind
    action: Action | None = None

    version: str | None = None            # resulting installed version
    previous_version: str | None = None   # version before the action
    detail: str = ""
    error_kind: str | None = None

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the entry ended in a non-failed state."""
        return self.kind != OutcomeKind.FAILED

    @property
    def failed(self) -> bool:
        return self.kind == OutcomeKind.FAILED

    @classmethod
    def success(cls, name: str, action: Action, version: str | None, **kwargs: Any) -> OutcomeRecord:
        """Create a success record (fresh install or reinstall)."""
        return cls(name=name, kind=OutcomeKind.SUCCESS, action=action, version=version, **kwargs)

    @classmethod
    def updated(
        cls,
        name: str,
        previous_version: str,
        version: str | None,
        **kwargs: Any,
    ) -> OutcomeRecord:
        """Create an updated record (upgrade from ``previous_version``)."""
        kwargs.setdefault("detail", f"{previous_version} → {version}")
        return cls(
            name=name,
            kind=OutcomeKind.UPDATED,
            action=Action.UPGRADE,
            version=version,
            previous_version=previous_version,
            **kwargs,
        )

    @classmethod
    def skipped(cls, name: str, version: str | None, reason: str = "", **kwargs: Any) -> OutcomeRecord:
        """Create a skipped record (already satisfied, or not processed)."""
        action = kwargs.pop("action", Action.SKIP)
        return cls(
            name=name,
            kind=OutcomeKind.SKIPPED,
            action=action,
            version=version,
            detail=reason,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        name: str,
        detail: str,
        error_kind: str,
        action: Action | None = None,
        **kwargs: Any,
    ) -> OutcomeRecord:
        """Create a failure record."""
        return cls(
            name=name,
            kind=OutcomeKind.FAILED,
            action=action,
            detail=detail,
            error_kind=error_kind,
            **kwargs,
        )
