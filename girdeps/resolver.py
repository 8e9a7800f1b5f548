# girdeps/resolver.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from types import ModuleType

from girdeps.catalog import (
    Catalog,
    DependencyRequest,
    PackageMatch,
    as_requests,
)
from girdeps.errors import BindingNotInstalled, MissingDependencies
from girdeps.loader import Loader

logger = logging.getLogger(__name__)


def resolve(
    requests: Mapping[str, str] | Iterable[DependencyRequest],
    catalog: Catalog,
    chain: Callable[[], Sequence[str]],
    loader: Loader,
) -> dict[str, ModuleType]:
    """Load every requested binding or report everything that is missing.

    Each request is looked up in the catalog before loading, so an
    unregistered pair fails even when the binding happens to be
    installed. A request whose loader raises BindingNotInstalled for
    that exact namespace/version contributes the packages (or, when no
    package is known, the typelib file name) of its catalog match. Any
    other loader error propagates immediately.

    Args:
        requests: ``{namespace: version}`` or DependencyRequest objects.
        catalog: Catalog holding an entry for every request.
        chain: Returns the platform identity chain; only called when
            something is missing.
        loader: Binding loader.

    Returns:
        Mapping of namespace to the loaded module.

    Raises:
        UnknownDependencyError: A request has no catalog entry.
        MissingDependencies: One or more bindings are not installed.
    """
    found: dict[str, ModuleType] = {}
    missing_packages: set[str] = set()
    missing_files: set[str] = set()

    for request in as_requests(requests):
        entry = catalog.rule(request.namespace, request.version)
        try:
            found[request.namespace] = loader.load(request.namespace, request.version)
        except BindingNotInstalled as exc:
            if not exc.matches(request.namespace, request.version):
                raise
            match = entry.match(chain())
            logger.debug("%s %s is not installed: %s", request.namespace, request.version, match)
            if isinstance(match, PackageMatch):
                missing_packages.update(match.packages)
            else:
                missing_files.add(match.artifact)
            continue
        logger.debug("Loaded %s %s", request.namespace, request.version)

    if missing_packages or missing_files:
        raise MissingDependencies(missing_packages, missing_files)
    return found
