# girdeps/terminal.py
from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from girdeps.process import Cancellable, check_cancelled, shell_join
from girdeps.prober import InstallCommand, Which

logger = logging.getLogger(__name__)


def _kgx(path: str, argv: Sequence[str]) -> list[str]:
    return [path, f"--command={shell_join(argv)}"]


def _gnome_terminal(path: str, argv: Sequence[str]) -> list[str]:
    return [path, "--", *argv]


def _xdg_terminal_exec(path: str, argv: Sequence[str]) -> list[str]:
    return [path, *argv]


# Preference order: GNOME Console, GNOME Terminal, the xdg launcher shim
TERMINALS: dict[str, Callable[[str, Sequence[str]], list[str]]] = {
    "kgx": _kgx,
    "gnome-terminal": _gnome_terminal,
    "xdg-terminal-exec": _xdg_terminal_exec,
}
DEFAULT_TERMINALS = tuple(TERMINALS)


@dataclass(frozen=True)
class TerminalCommand:
    """Wraps an argv so it runs inside a terminal emulator window."""

    name: str
    path: str

    def __call__(self, argv: Sequence[str]) -> list[str]:
        return TERMINALS[self.name](self.path, argv)


@dataclass(frozen=True)
class TerminalInstallCommand:
    """An install command shown in a terminal window."""

    terminal: TerminalCommand
    install: InstallCommand

    @property
    def description(self) -> str:
        return f"{self.install.description} in {self.terminal.name}"

    def __call__(self, packages: Sequence[str]) -> list[str]:
        return self.terminal(self.install(packages))


async def find_terminal_command(
    *,
    which: Which = shutil.which,
    terminals: Sequence[str] = DEFAULT_TERMINALS,
    cancellable: Cancellable | None = None,
) -> TerminalCommand | None:
    """Return the first terminal emulator from ``terminals`` found on PATH."""
    check_cancelled(cancellable)
    for name in terminals:
        if name not in TERMINALS:
            raise ValueError(f"Unsupported terminal: {name}")
        path = which(name)
        if path:
            logger.debug("Using terminal %s", path)
            return TerminalCommand(name, path)
    logger.debug("No terminal emulator among %s", list(terminals))
    return None
