"""
Pip provider — Python packages through ``python -m pip``.

All pip invocations go through ``_pip``, the single place where
``subprocess.run`` is called. Timeouts and missing interpreters are
turned into the matching ProviderError.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import sys
import time
from pathlib import Path

from provisioner.adapters.base import PackageProvider
from provisioner.core.errors import (
    FatalSetupError,
    InstallError,
    ProviderError,
    QueryError,
    UninstallError,
    UpgradeError,
)
from provisioner.core.models.state import ABSENT, InstalledState, Present
from provisioner.core.models.version import VersionSpec

logger = logging.getLogger(__name__)

# "Version: 2.31.0" in `pip show` output
_VERSION_LINE = re.compile(r"^Version:\s*(\S+)\s*$", re.MULTILINE)
# Numeric release segment of a PEP 440 version: "1.0" in "1.0rc1", "2.0" in "1!2.0"
_RELEASE = re.compile(r"^v?(?:\d+!)?(\d+(?:\.\d+)*)")


def parse_pip_version(raw: str) -> VersionSpec | None:
    """Reduce a pip-reported version to its dotted numeric release.

    The epoch prefix and pre-release, post-release and local suffixes
    are dropped.
    Returns None when there is no numeric release segment.
    """
    match = _RELEASE.match(raw.strip())
    if not match:
        return None
    return VersionSpec.parse(match.group(1))


def _check_option(name: str, value: object, types: tuple[type, ...]) -> None:
    # bool is an int subclass; only accept it where bool is asked for
    if isinstance(value, bool) and bool not in types:
        raise TypeError(f"{name} must not be a boolean")
    if not isinstance(value, types):
        raise TypeError(f"{name} has invalid type {type(value).__name__}: {value!r}")


class PipProvider(PackageProvider):
    """Python packages managed by pip.

    Args:
        python: Interpreter whose pip is used (default: the running one).
        timeout: Seconds before a pip call is abandoned.
        index_url: Optional ``--index-url`` for install/upgrade.
        extra_args: Extra arguments appended to install/upgrade.
        user: Install into the user site (``--user``).

    Raises:
        TypeError: An option has the wrong type.
        ValueError: ``timeout`` is not positive.
    """

    def __init__(
        self,
        python: str | None = None,
        timeout: int = 300,
        index_url: str | None = None,
        extra_args: list[str] | None = None,
        user: bool = False,
    ):
        _check_option("python", python, (str, type(None)))
        _check_option("timeout", timeout, (int, float))
        _check_option("index_url", index_url, (str, type(None)))
        _check_option("extra_args", extra_args, (list, tuple, type(None)))
        _check_option("user", user, (bool,))
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if extra_args and not all(isinstance(a, str) for a in extra_args):
            raise TypeError(f"extra_args must be a list of strings, got {extra_args!r}")

        self._python = python or sys.executable
        self._timeout = timeout
        self._index_url = index_url
        self._extra_args = list(extra_args or [])
        self._user = user

    @property
    def name(self) -> str:
        return "pip"

    def is_available(self) -> bool:
        return shutil.which(self._python) is not None or Path(self._python).is_file()

    def prepare(self) -> None:
        """Make sure pip exists for the interpreter, bootstrapping if needed."""
        if not self.is_available():
            raise FatalSetupError(f"Python interpreter not found: {self._python}")

        result = self._run([self._python, "-m", "pip", "--version"], timeout=60)
        if result is not None and result.returncode == 0:
            logger.debug("pip ready: %s", result.stdout.strip())
            return

        logger.info("pip missing for %s, bootstrapping with ensurepip", self._python)
        result = self._run([self._python, "-m", "ensurepip", "--upgrade"], timeout=self._timeout)
        if result is None or result.returncode != 0:
            detail = result.stderr.strip() if result is not None else "ensurepip did not run"
            raise FatalSetupError(f"Cannot bootstrap pip for {self._python}: {detail}")

    # ── Operations ──────────────────────────────────────────────

    def query(self, name: str) -> InstalledState:
        result = self._pip(["show", name], QueryError, name)
        if result.returncode != 0:
            output = (result.stdout + result.stderr).lower()
            if "not found" in output:
                return ABSENT
            raise QueryError(
                result.stderr.strip() or f"pip show exited with code {result.returncode}",
                package=name,
            )

        match = _VERSION_LINE.search(result.stdout)
        if not match:
            raise QueryError(f"No version reported by pip for {name}", package=name)

        raw = match.group(1)
        version = parse_pip_version(raw)
        if version is None:
            raise QueryError(f"Unparseable version {raw!r} for {name}", package=name)
        return Present(version)

    def install(self, name: str, min_version: VersionSpec) -> None:
        args = ["install", f"{name}>={min_version}", *self._install_args()]
        self._check(self._pip(args, InstallError, name), InstallError, name)

    def upgrade(self, name: str) -> None:
        args = ["install", "--upgrade", name, *self._install_args()]
        self._check(self._pip(args, UpgradeError, name), UpgradeError, name)

    def uninstall(self, name: str) -> None:
        args = ["uninstall", "-y", name]
        self._check(self._pip(args, UninstallError, name), UninstallError, name)

    # ── Helpers ─────────────────────────────────────────────────

    def _install_args(self) -> list[str]:
        args = ["--disable-pip-version-check"]
        if self._index_url:
            args.extend(["--index-url", self._index_url])
        if self._user:
            args.append("--user")
        args.extend(self._extra_args)
        return args

    def _pip(
        self,
        args: list[str],
        error_type: type[ProviderError],
        package: str,
    ) -> subprocess.CompletedProcess[str]:
        cmd = [self._python, "-m", "pip", *args]
        logger.debug("Executing: %s", " ".join(cmd))
        start = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise error_type(f"pip {args[0]} timed out after {self._timeout}s", package=package) from e
        except OSError as e:
            raise error_type(f"Cannot run pip: {e}", package=package) from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("pip %s %s → %d (%dms)", args[0], package, result.returncode, elapsed_ms)
        return result

    def _check(
        self,
        result: subprocess.CompletedProcess[str],
        error_type: type[ProviderError],
        package: str,
    ) -> None:
        if result.returncode != 0:
            raise error_type(
                result.stderr.strip() or f"pip exited with code {result.returncode}",
                package=package,
            )

    def _run(self, cmd: list[str], timeout: int) -> subprocess.CompletedProcess[str] | None:
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.warning("Command failed: %s: %s", " ".join(cmd), e)
            return None
