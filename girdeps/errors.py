# girdeps/errors.py
from __future__ import annotations

from collections.abc import Iterable, Sequence


class GirdepsError(Exception):
    """Base class for all errors raised by girdeps."""

    pass


class UnknownDependencyError(GirdepsError):
    """Raised when a namespace/version pair has no catalog entry."""

    def __init__(self, namespace: str, version: str) -> None:
        super().__init__(f"No definition for namespace {namespace}, version {version}")
        self.namespace = namespace
        self.version = version


class BindingNotInstalled(GirdepsError):
    """Raised by a loader when the requested binding is not installed.

    The namespace and version are carried on the exception so the
    resolver can tell this request's absence apart from any other
    loading failure.
    """

    def __init__(self, namespace: str, version: str) -> None:
        super().__init__(f"Namespace {namespace}, version {version} is not installed")
        self.namespace = namespace
        self.version = version

    def matches(self, namespace: str, version: str) -> bool:
        return self.namespace == namespace and self.version == version


class MissingDependencies(GirdepsError):
    """Aggregate of every package and file missing after a resolve attempt."""

    def __init__(self, packages: Iterable[str] = (), files: Iterable[str] = ()) -> None:
        self.packages = frozenset(packages)
        self.files = frozenset(files)
        if not self.packages and not self.files:
            raise ValueError("MissingDependencies needs at least one package or file")
        super().__init__(self._message(self.packages, self.files))

    @staticmethod
    def _message(packages: frozenset[str], files: frozenset[str]) -> str:
        parts = []
        if packages:
            parts.append(f"Missing packages: {', '.join(sorted(packages))}.")
        if files:
            parts.append(f"Missing files: {', '.join(sorted(files))}.")
        return " ".join(parts)


class CatalogError(GirdepsError):
    """Raised when a catalog document is malformed."""

    pass


class ProbeError(GirdepsError):
    """Raised when an installer tool exists but fails its functional probe."""

    pass


class NoInstallerError(GirdepsError):
    """Raised when no usable package installation tool was found."""

    def __init__(self, message: str = "No supported package installation tool found") -> None:
        super().__init__(message)


class InstallFailedError(GirdepsError):
    """Raised when the install command exits with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int) -> None:
        super().__init__(f"Install command exited with status {returncode}")
        self.argv = list(argv)
        self.returncode = returncode


class OperationCancelled(GirdepsError):
    """Raised when a Cancellable is triggered during an async operation."""

    def __init__(self, message: str = "Operation was cancelled") -> None:
        super().__init__(message)
