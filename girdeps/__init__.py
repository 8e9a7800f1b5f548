"""Resolve optional GObject Introspection bindings and install what is missing."""
from __future__ import annotations

from girdeps.catalog import (
    ArtifactFallback,
    Catalog,
    DependencyRequest,
    PackageMatch,
    Unavailable,
    load_catalog,
)
from girdeps.engine import DependencyEngine
from girdeps.errors import (
    BindingNotInstalled,
    GirdepsError,
    InstallFailedError,
    MissingDependencies,
    NoInstallerError,
    OperationCancelled,
    UnknownDependencyError,
)
from girdeps.process import Cancellable

__all__ = [
    "ArtifactFallback",
    "BindingNotInstalled",
    "Cancellable",
    "Catalog",
    "DependencyEngine",
    "DependencyRequest",
    "GirdepsError",
    "InstallFailedError",
    "MissingDependencies",
    "NoInstallerError",
    "OperationCancelled",
    "PackageMatch",
    "Unavailable",
    "UnknownDependencyError",
    "load_catalog",
]
