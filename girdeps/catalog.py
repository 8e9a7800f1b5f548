# girdeps/catalog.py
"""Declarative catalog of optional bindings and the packages providing them.

Each entry maps a namespace/version to the typelib file the binding
loads and an ordered list of platform rules. A platform rule pairs an
identity pattern with either the packages that ship the binding on that
platform, or an explicit marker that no package does.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from importlib import resources
from pathlib import Path
from typing import Union

import yaml

from girdeps.errors import CatalogError, UnknownDependencyError

logger = logging.getLogger(__name__)

BUILTIN_CATALOG = "catalog.yaml"


@dataclass(frozen=True, order=True)
class DependencyRequest:
    """One optional binding the caller wants loaded."""

    namespace: str
    version: str

    @classmethod
    def parse(cls, text: str) -> DependencyRequest:
        """Parse ``Namespace=version``."""
        namespace, sep, version = text.partition("=")
        if not sep or not namespace or not version or "=" in version:
            raise ValueError(f"Invalid argument {text}: should be in namespace=version format")
        return cls(namespace, version)


def as_requests(
    requests: Mapping[str, str] | Iterable[DependencyRequest],
) -> list[DependencyRequest]:
    """Normalize a ``{namespace: version}`` mapping or an iterable of requests."""
    if isinstance(requests, Mapping):
        return [DependencyRequest(ns, ver) for ns, ver in requests.items()]
    return list(requests)


@dataclass(frozen=True)
class PackageMatch:
    """The binding is provided by one of ``packages`` on this platform."""

    identity: str
    packages: frozenset[str]
    artifact: str


@dataclass(frozen=True)
class Unavailable:
    """The platform is known to have no package providing the binding."""

    identity: str
    artifact: str


@dataclass(frozen=True)
class ArtifactFallback:
    """No platform rule matched; only the expected file name is known."""

    artifact: str


MatchResult = Union[PackageMatch, Unavailable, ArtifactFallback]


@dataclass(frozen=True)
class PlatformRule:
    """An identity pattern and its packages. No packages means unavailable."""

    pattern: str
    packages: frozenset[str] = frozenset()

    @property
    def unavailable(self) -> bool:
        return not self.packages

    def apply(self, identity: str, artifact: str) -> PackageMatch | Unavailable:
        if self.unavailable:
            return Unavailable(identity, artifact)
        return PackageMatch(identity, self.packages, artifact)


@dataclass(frozen=True)
class CatalogEntry:
    namespace: str
    version: str
    artifact: str
    platforms: tuple[PlatformRule, ...] = ()

    def match(self, chain: Sequence[str]) -> MatchResult:
        """Find the rule for the most specific identity in ``chain``.

        Identities are tried in chain order; for each one the platform
        rules are tried in declaration order.
        """
        for identity in chain:
            for rule in self.platforms:
                if fnmatchcase(identity, rule.pattern):
                    logger.debug(
                        "%s %s: identity %s matched pattern %s",
                        self.namespace, self.version, identity, rule.pattern,
                    )
                    return rule.apply(identity, self.artifact)
        return ArtifactFallback(self.artifact)


@dataclass
class Catalog:
    """Mapping of namespace -> version -> CatalogEntry."""

    entries: dict[str, dict[str, CatalogEntry]] = field(default_factory=dict)

    def add(self, entry: CatalogEntry) -> None:
        self.entries.setdefault(entry.namespace, {})[entry.version] = entry

    def rule(self, namespace: str, version: str) -> CatalogEntry:
        """Look up the entry for a namespace/version pair.

        Raises:
            UnknownDependencyError: If the pair is not registered.
        """
        try:
            return self.entries[namespace][version]
        except KeyError:
            raise UnknownDependencyError(namespace, version) from None

    def __iter__(self):
        for versions in self.entries.values():
            yield from versions.values()

    def __len__(self) -> int:
        return sum(len(versions) for versions in self.entries.values())

    def subset(self, requests: Iterable[DependencyRequest]) -> Catalog:
        """Return a catalog holding only the requested entries."""
        trimmed = Catalog()
        for request in requests:
            trimmed.add(self.rule(request.namespace, request.version))
        return trimmed

    def merge(self, other: Catalog) -> None:
        """Add every entry of ``other``, replacing entries with the same key."""
        for entry in other:
            self.add(entry)


def _parse_platform(where: str, raw: object) -> PlatformRule:
    if not isinstance(raw, dict) or not isinstance(raw.get("match"), str):
        raise CatalogError(f"{where}: each platform needs a 'match' string")
    packages = raw.get("packages")
    unavailable = raw.get("unavailable", False)
    if unavailable is True:
        if packages:
            raise CatalogError(f"{where}: 'unavailable' platform {raw['match']} lists packages")
        return PlatformRule(raw["match"])
    if (
        not isinstance(packages, list)
        or not packages
        or not all(isinstance(p, str) and p for p in packages)
    ):
        raise CatalogError(
            f"{where}: platform {raw['match']} needs a non-empty 'packages' list or 'unavailable: true'"
        )
    return PlatformRule(raw["match"], frozenset(packages))


def parse_catalog(raw: object, source: str = "<catalog>") -> Catalog:
    """Build a Catalog from a decoded YAML document.

    Raises:
        CatalogError: If the document does not follow the catalog schema.
    """
    catalog = Catalog()
    if raw is None:
        return catalog
    if not isinstance(raw, dict):
        raise CatalogError(f"{source}: top level must be a mapping of namespaces")

    for namespace, versions in raw.items():
        if not isinstance(namespace, str) or not isinstance(versions, dict):
            raise CatalogError(f"{source}: namespace {namespace!r} must map versions to entries")
        for version, body in versions.items():
            # YAML turns unquoted 3.0 into a float; refuse rather than guess
            if not isinstance(version, str):
                raise CatalogError(f"{source}: {namespace} version {version!r} must be a quoted string")
            where = f"{source}: {namespace} {version}"
            if not isinstance(body, dict) or not isinstance(body.get("artifact"), str):
                raise CatalogError(f"{where}: entry needs an 'artifact' file name")
            platforms = body.get("platforms") or []
            if not isinstance(platforms, list):
                raise CatalogError(f"{where}: 'platforms' must be a list")
            catalog.add(CatalogEntry(
                namespace=namespace,
                version=version,
                artifact=body["artifact"],
                platforms=tuple(_parse_platform(where, p) for p in platforms),
            ))
    return catalog


def load_catalog_file(path: str | Path) -> Catalog:
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        raise CatalogError(f"Catalog file not found: {path}") from None
    except yaml.YAMLError as exc:
        raise CatalogError(f"{path}: invalid YAML: {exc}") from exc
    return parse_catalog(raw, str(path))


def load_catalog(extra: Iterable[str | Path] = ()) -> Catalog:
    """Load the built-in catalog, then each extra file on top of it."""
    text = resources.files("girdeps.data").joinpath(BUILTIN_CATALOG).read_text(encoding="utf-8")
    catalog = parse_catalog(yaml.safe_load(text), BUILTIN_CATALOG)
    for path in extra:
        catalog.merge(load_catalog_file(path))
        logger.debug("Merged catalog %s", path)
    logger.debug("Catalog has %d entries", len(catalog))
    return catalog


def dump_catalog(catalog: Catalog) -> str:
    """Serialize a catalog back to the YAML layout ``parse_catalog`` reads."""
    doc: dict[str, dict[str, dict]] = {}
    for entry in catalog:
        platforms = []
        for rule in entry.platforms:
            if rule.unavailable:
                platforms.append({"match": rule.pattern, "unavailable": True})
            else:
                platforms.append({"match": rule.pattern, "packages": sorted(rule.packages)})
        doc.setdefault(entry.namespace, {})[entry.version] = {
            "artifact": entry.artifact,
            "platforms": platforms,
        }
    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)
