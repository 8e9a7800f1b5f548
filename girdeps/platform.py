# girdeps/platform.py
"""OS identity detection.

The identity chain lists platform identifiers from most to least
specific, e.g. for Ubuntu 22.04::

    ("ubuntu:22.04", "ubuntu:22", "ubuntu", "debian")

Catalog entries are matched against it in that order.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)

OS_RELEASE_PATHS = ("/etc/os-release", "/usr/lib/os-release")

# os-release(5): "If not set, a default of "ID=linux" may be used."
DEFAULT_ID = "linux"

_ESCAPES = {'\\"': '"', "\\\\": "\\", "\\$": "$", "\\`": "`"}


def _unquote(value: str) -> str:
    """Strip optional surrounding quotes from an os-release value."""
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
        for escaped, plain in _ESCAPES.items():
            value = value.replace(escaped, plain)
    return value


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release content into a dict of its fields."""
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        if not key.isidentifier():
            continue
        fields[key] = _unquote(value.strip())
    return fields


def read_os_release(path: str | None = None) -> dict[str, str]:
    """Read the OS identification fields.

    Tries ``path`` when given, otherwise the standard locations in
    os-release(5) order. A missing file yields an empty dict.
    """
    for candidate in (path,) if path else OS_RELEASE_PATHS:
        try:
            with open(candidate, encoding="utf-8") as f:
                fields = parse_os_release(f.read())
        except FileNotFoundError:
            continue
        logger.debug("Read OS identity from %s", candidate)
        return fields
    logger.debug("No os-release file found")
    return {}


def _version_prefixes(version: str) -> list[str]:
    parts = version.split(".")
    return [".".join(parts[:n]) for n in range(len(parts), 0, -1) if parts[n - 1]]


def identity_chain(os_info: Mapping[str, str]) -> tuple[str, ...]:
    """Build the platform identity chain from os-release fields.

    Args:
        os_info: Mapping with the ``ID``, ``VERSION_ID`` and ``ID_LIKE``
            fields. Missing or empty fields are treated as absent.

    Returns:
        A non-empty tuple of identifiers, most specific first and
        without duplicates.
    """
    os_id = (os_info.get("ID") or "").strip() or DEFAULT_ID
    version = (os_info.get("VERSION_ID") or "").strip()

    chain: list[str] = []

    def push(identity: str) -> None:
        if identity and identity not in chain:
            chain.append(identity)

    if version:
        for prefix in _version_prefixes(version):
            push(f"{os_id}:{prefix}")
    push(os_id)

    for like in (os_info.get("ID_LIKE") or "").split():
        push(like)

    # Ubuntu derivatives often list only "ubuntu" in ID_LIKE
    if "ubuntu" in chain and "debian" not in chain:
        chain.append("debian")

    return tuple(chain)
