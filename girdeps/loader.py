# girdeps/loader.py
from __future__ import annotations

import importlib
import logging
from types import ModuleType
from typing import Protocol

from girdeps.errors import BindingNotInstalled

logger = logging.getLogger(__name__)


class Loader(Protocol):
    """Loads a binding, raising BindingNotInstalled when it is absent."""

    def load(self, namespace: str, version: str) -> ModuleType: ...


class GiLoader:
    """Load GObject Introspection namespaces through PyGObject.

    Availability is decided by asking the introspection repository which
    versions of the namespace exist on the typelib search path, so only a
    missing typelib is reported as BindingNotInstalled. Version conflicts
    and broken typelibs surface as the errors PyGObject raises.
    """

    def load(self, namespace: str, version: str) -> ModuleType:
        import gi

        available = gi.Repository.get_default().enumerate_versions(namespace)
        logger.debug("Available versions of %s: %s", namespace, available)
        if version not in available:
            raise BindingNotInstalled(namespace, version)

        gi.require_version(namespace, version)
        return importlib.import_module(f"gi.repository.{namespace}")
