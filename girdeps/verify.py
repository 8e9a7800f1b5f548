# girdeps/verify.py
"""Check that catalog packages really ship the typelibs they are listed for.

Queries the installed-package database, so the packages being verified
must already be installed.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass

from girdeps.catalog import Catalog, PackageMatch
from girdeps.errors import GirdepsError
from girdeps.process import Cancellable, ProcessRunner, check_cancelled, shell_join

logger = logging.getLogger(__name__)

LIST_FILES_COMMANDS = {
    "alpine": ("apk", "info", "-Lq"),
    "arch": ("pacman", "-Qql"),
    "debian": ("dpkg-query", "-L"),
    "fedora": ("rpm", "-ql", "--whatprovides"),
    "suse": ("rpm", "-ql", "--whatprovides"),
}


@dataclass
class VerifyResult:
    """Result of verifying one catalog entry."""
    namespace: str
    version: str
    packages: tuple[str, ...]
    passed: bool | None  # None when skipped
    detail: str


def list_files_command(chain: Sequence[str]) -> tuple[str, ...] | None:
    for identity in chain:
        if identity in LIST_FILES_COMMANDS:
            return LIST_FILES_COMMANDS[identity]
    return None


async def _package_files(
    command: tuple[str, ...],
    package: str,
    runner: ProcessRunner,
    cancellable: Cancellable | None,
) -> set[str] | None:
    """Return basenames of the files in ``package``, or None if the query failed."""
    result = await runner.run([*command, package], cancellable=cancellable)
    if not result.ok:
        logger.debug("%s exited with status %d", shell_join(result.argv), result.returncode)
        return None
    return {os.path.basename(line) for line in result.stdout.splitlines() if line}


async def verify_catalog(
    catalog: Catalog,
    chain: Sequence[str],
    runner: ProcessRunner,
    cancellable: Cancellable | None = None,
) -> list[VerifyResult]:
    """Verify every catalog entry that has packages on this platform.

    Raises:
        GirdepsError: If this platform has no known file listing tool.
    """
    check_cancelled(cancellable)
    command = list_files_command(chain)
    if command is None:
        raise GirdepsError(f"No package file listing tool known for {', '.join(chain)}")

    results: list[VerifyResult] = []
    for entry in catalog:
        match = entry.match(chain)
        if not isinstance(match, PackageMatch):
            results.append(VerifyResult(
                entry.namespace, entry.version, (), None,
                f"skipped {entry.artifact}: no known package",
            ))
            continue

        packages = tuple(sorted(match.packages))
        logger.info("Verify that %s contains file %s", ", ".join(packages), entry.artifact)
        files: set[str] = set()
        failed = []
        for package in packages:
            check_cancelled(cancellable)
            listed = await _package_files(command, package, runner, cancellable)
            if listed is None:
                failed.append(package)
            else:
                files |= listed

        if entry.artifact in files:
            results.append(VerifyResult(entry.namespace, entry.version, packages, True, "ok"))
        elif failed:
            results.append(VerifyResult(
                entry.namespace, entry.version, packages, False,
                f"could not list files of {', '.join(failed)}",
            ))
        else:
            results.append(VerifyResult(
                entry.namespace, entry.version, packages, False,
                f"file {entry.artifact} is not provided by {', '.join(packages)}",
            ))
    return results
