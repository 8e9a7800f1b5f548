# girdeps/prober.py
"""Discovery of a working package installation command.

PackageKit's ``pkcon`` is preferred because it works on every
distribution and asks for authorization itself. It is only trusted
after it reports a working backend that can install packages. Otherwise
the distribution's own tool is run through a privilege escalation
helper, chosen by walking the platform identity chain.
"""
from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Optional, Union

from girdeps.errors import ProbeError
from girdeps.process import Cancellable, ProcessRunner, check_cancelled, shell_join

logger = logging.getLogger(__name__)

Which = Callable[[str], Optional[str]]

PROBE_ENV = {"LC_ALL": "C.UTF-8"}
ROLE_INSTALL = "install-packages"
ROLE_REFRESH = "refresh-cache"
DEFAULT_ESCALATORS = ("pkexec",)

_ROLE_RE = re.compile(r"^[a-z][a-z0-9-]*$")


@dataclass(frozen=True)
class PackageKitCommand:
    """Builds ``pkcon install`` argv, refreshing the cache first if supported."""

    pkcon: str
    refresh: bool = False
    shell: str = "/bin/sh"

    @property
    def description(self) -> str:
        return "pkcon"

    def __call__(self, packages: Sequence[str]) -> list[str]:
        install = [self.pkcon, "install", *packages]
        if not self.refresh:
            return install
        script = f"{shell_join([self.pkcon, 'refresh'])} && {shell_join(['exec', *install])}"
        return [self.shell, "-c", script]


@dataclass(frozen=True)
class DistroFamily:
    """A distribution family's native package tool and its arguments."""

    name: str
    tools: tuple[str, ...]
    install_args: tuple[str, ...]
    # Separate refresh step, run in the same escalated shell
    refresh_args: tuple[str, ...] | None = None


DISTRO_FAMILIES = {
    family.name: family
    for family in (
        DistroFamily("alpine", ("apk",), ("-U", "add")),
        DistroFamily("arch", ("pacman",), ("-Sy",)),
        DistroFamily("debian", ("apt", "apt-get"), ("install",), refresh_args=("update",)),
        DistroFamily("fedora", ("dnf", "yum"), ("install",)),
        DistroFamily("suse", ("zypper",), ("install",)),
    )
}


@dataclass(frozen=True)
class DistroCommand:
    """Builds an escalated install argv for a distribution's own tool."""

    family: DistroFamily
    escalator: str
    tool: str
    shell: str = "/bin/sh"

    @property
    def description(self) -> str:
        return f"{self.tool} via {self.escalator}"

    def __call__(self, packages: Sequence[str]) -> list[str]:
        install = [self.tool, *self.family.install_args, *packages]
        if self.family.refresh_args is None:
            return [self.escalator, *install]
        script = " && ".join((
            shell_join([self.tool, *self.family.refresh_args]),
            shell_join(["exec", *install]),
        ))
        return [self.escalator, self.shell, "-c", script]


InstallCommand = Union[PackageKitCommand, DistroCommand]


def parse_backend_details(output: str) -> dict[str, str]:
    """Parse ``pkcon backend-details`` output into its fields.

    Raises:
        ProbeError: If the output does not describe a backend.
    """
    # pkcon may exit 0 without a usable backend, so check the report itself
    if not output.startswith("Name:"):
        raise ProbeError(f"Unexpected backend-details output: {output[:200]!r}")
    fields: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            fields[key.strip()] = value.strip()
    if not fields.get("Name"):
        raise ProbeError("backend-details reported an empty backend name")
    return fields


def parse_roles(text: str) -> frozenset[str]:
    """Parse a role list separated by newlines, commas or spaces.

    Raises:
        ProbeError: If the list is empty or contains something that is
            not a role name.
    """
    roles = [r for r in re.split(r"[\s,;]+", text) if r]
    if not roles:
        raise ProbeError("PackageKit reported no roles")
    bad = [r for r in roles if not _ROLE_RE.match(r)]
    if bad:
        raise ProbeError(f"Malformed role list: {bad[:3]!r}")
    return frozenset(roles)


async def probe_packagekit(
    pkcon: str,
    runner: ProcessRunner,
    cancellable: Cancellable | None = None,
) -> frozenset[str]:
    """Check that pkcon has a working backend able to install packages.

    Returns:
        The roles supported by the backend.

    Raises:
        ProbeError: If pkcon fails or reports an unusable backend.
    """
    check_cancelled(cancellable)
    details = await runner.run([pkcon, "backend-details"], env=PROBE_ENV, cancellable=cancellable)
    if not details.ok:
        raise ProbeError(f"{shell_join(details.argv)} exited with status {details.returncode}")
    fields = parse_backend_details(details.stdout)
    logger.debug("PackageKit backend: %s", fields["Name"])

    if "Roles" in fields:
        roles = parse_roles(fields["Roles"])
    else:
        check_cancelled(cancellable)
        listed = await runner.run([pkcon, "get-roles"], env=PROBE_ENV, cancellable=cancellable)
        if not listed.ok:
            raise ProbeError(f"{shell_join(listed.argv)} exited with status {listed.returncode}")
        roles = parse_roles(listed.stdout)

    if ROLE_INSTALL not in roles:
        raise ProbeError(f"PackageKit backend {fields['Name']} cannot install packages")
    return roles


def find_escalator(which: Which, escalators: Sequence[str] = DEFAULT_ESCALATORS) -> str | None:
    for name in escalators:
        path = which(name)
        if path:
            return path
    return None


async def find_install_command(
    chain: Sequence[str],
    *,
    which: Which = shutil.which,
    runner: ProcessRunner | None = None,
    escalators: Sequence[str] = DEFAULT_ESCALATORS,
    use_packagekit: bool = True,
    cancellable: Cancellable | None = None,
) -> InstallCommand | None:
    """Find the command that installs OS packages on this machine.

    Args:
        chain: Platform identity chain, most specific first.
        which: PATH lookup, returning the program path or None.
        runner: Runs the PackageKit probe.
        escalators: Privilege escalation helpers, in preference order.
        use_packagekit: Try pkcon before the distribution tools.
        cancellable: Cancellation token.

    Returns:
        A callable mapping package names to argv, or None when nothing
        usable is installed.
    """
    check_cancelled(cancellable)
    runner = runner or ProcessRunner()
    shell = which("sh") or "/bin/sh"

    if use_packagekit:
        pkcon = which("pkcon")
        if pkcon:
            try:
                roles = await probe_packagekit(pkcon, runner, cancellable)
            except (ProbeError, OSError) as exc:
                logger.warning("%s doesn't seem to work: %s", pkcon, exc)
            else:
                return PackageKitCommand(pkcon, refresh=ROLE_REFRESH in roles, shell=shell)

    check_cancelled(cancellable)
    escalator = find_escalator(which, escalators)
    if not escalator:
        logger.debug("No privilege escalation helper among %s", list(escalators))
        return None

    for identity in chain:
        family = DISTRO_FAMILIES.get(identity)
        if family is None:
            continue
        tool = next((path for path in map(which, family.tools) if path), None)
        if tool:
            logger.debug("Using %s for %s family", tool, family.name)
            return DistroCommand(family, escalator, tool, shell=shell)
        logger.debug("No %s tool found for %s family", "/".join(family.tools), family.name)

    return None
