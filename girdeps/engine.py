# girdeps/engine.py
"""Orchestrates resolving, installing and re-resolving optional bindings."""
from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable, Mapping
from types import ModuleType

from girdeps.catalog import (
    Catalog,
    CatalogEntry,
    DependencyRequest,
    MatchResult,
    as_requests,
    load_catalog,
)
from girdeps.config import AppConfig
from girdeps.errors import InstallFailedError, MissingDependencies, NoInstallerError
from girdeps.loader import GiLoader, Loader
from girdeps.platform import identity_chain, read_os_release
from girdeps.process import (
    Cancellable,
    ProcessResult,
    ProcessRunner,
    check_cancelled,
    shell_join,
)
from girdeps.prober import InstallCommand, Which, find_install_command
from girdeps.resolver import resolve
from girdeps.terminal import (
    TerminalCommand,
    TerminalInstallCommand,
    find_terminal_command,
)

logger = logging.getLogger(__name__)


class DependencyEngine:
    """Resolves optional bindings and installs the packages they need.

    The platform identity chain and the discovered install command are
    computed on first use and kept for the engine's lifetime. Every
    collaborator can be passed in, so tests can run against fabricated
    OS identities, loaders and PATH contents.
    """

    def __init__(
        self,
        *,
        config: AppConfig | None = None,
        catalog: Catalog | None = None,
        os_info: Mapping[str, str] | None = None,
        loader: Loader | None = None,
        which: Which = shutil.which,
        runner: ProcessRunner | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.which = which
        self.runner = runner or ProcessRunner()
        self._catalog = catalog
        self._os_info = os_info
        self._loader = loader
        self._chain: tuple[str, ...] | None = None
        self._install_command: InstallCommand | None = None
        self._install_probed = False

    @property
    def catalog(self) -> Catalog:
        if self._catalog is None:
            self._catalog = load_catalog(self.config.catalog.extra)
        return self._catalog

    @property
    def loader(self) -> Loader:
        if self._loader is None:
            self._loader = GiLoader()
        return self._loader

    def identity_chain(self) -> tuple[str, ...]:
        if self._chain is None:
            os_info = self._os_info
            if os_info is None:
                os_info = read_os_release(self.config.platform.os_release)
            self._chain = identity_chain(os_info)
            logger.debug("Platform identity chain: %s", ", ".join(self._chain))
        return self._chain

    def rule(self, namespace: str, version: str) -> CatalogEntry:
        return self.catalog.rule(namespace, version)

    def match(self, namespace: str, version: str) -> MatchResult:
        """Match a catalog entry against this platform."""
        return self.rule(namespace, version).match(self.identity_chain())

    def resolve(
        self, requests: Mapping[str, str] | Iterable[DependencyRequest],
    ) -> dict[str, ModuleType]:
        """Load every requested binding.

        Raises:
            UnknownDependencyError: A request has no catalog entry.
            MissingDependencies: Some bindings are not installed.
        """
        return resolve(requests, self.catalog, self.identity_chain, self.loader)

    async def find_install_command(
        self, cancellable: Cancellable | None = None,
    ) -> InstallCommand | None:
        check_cancelled(cancellable)
        if not self._install_probed:
            self._install_command = await find_install_command(
                self.identity_chain(),
                which=self.which,
                runner=self.runner,
                escalators=self.config.install.escalators,
                use_packagekit=self.config.install.use_packagekit,
                cancellable=cancellable,
            )
            self._install_probed = True
            if self._install_command is not None:
                logger.debug("Install command: %s", self._install_command.description)
        return self._install_command

    async def find_terminal_command(
        self, cancellable: Cancellable | None = None,
    ) -> TerminalCommand | None:
        return await find_terminal_command(
            which=self.which,
            terminals=self.config.terminal.preference,
            cancellable=cancellable,
        )

    async def find_terminal_install_command(
        self, cancellable: Cancellable | None = None,
    ) -> TerminalInstallCommand | None:
        """Find an install command wrapped to run in a terminal window."""
        check_cancelled(cancellable)
        terminal = await self.find_terminal_command(cancellable)
        if terminal is None:
            return None
        install = await self.find_install_command(cancellable)
        if install is None:
            return None
        return TerminalInstallCommand(terminal, install)

    async def install_argv(
        self,
        packages: Iterable[str],
        *,
        terminal: bool = False,
        cancellable: Cancellable | None = None,
    ) -> list[str]:
        """Build the command line that installs ``packages``.

        Raises:
            NoInstallerError: If no usable installation tool (or, with
                ``terminal``, no terminal emulator) was found.
        """
        names = sorted(set(packages))
        if not names:
            raise ValueError("No packages to install")
        if terminal:
            command = await self.find_terminal_install_command(cancellable)
            if command is None:
                raise NoInstallerError("No supported terminal emulator or installation tool found")
        else:
            command = await self.find_install_command(cancellable)
            if command is None:
                raise NoInstallerError()
        return command(names)

    async def install(
        self,
        packages: Iterable[str],
        *,
        terminal: bool = False,
        cancellable: Cancellable | None = None,
    ) -> ProcessResult:
        """Install ``packages`` and wait for the command to finish.

        The command inherits the standard streams so the user can answer
        authorization and confirmation prompts.

        Raises:
            NoInstallerError: If no installation tool is available.
            InstallFailedError: If the command exits with non-zero status.
            OperationCancelled: If ``cancellable`` fires first.
        """
        argv = await self.install_argv(packages, terminal=terminal, cancellable=cancellable)
        logger.info("Running: %s", shell_join(argv))
        result = await self.runner.run(argv, capture=False, cancellable=cancellable)
        if not result.ok:
            raise InstallFailedError(argv, result.returncode)
        return result

    async def ensure(
        self,
        requests: Mapping[str, str] | Iterable[DependencyRequest],
        *,
        terminal: bool = False,
        cancellable: Cancellable | None = None,
    ) -> dict[str, ModuleType]:
        """Resolve ``requests``, installing missing packages if needed.

        Missing files without a known package cannot be installed
        automatically; in that case the MissingDependencies failure is
        raised unchanged. Otherwise the packages are installed and the
        requests resolved once more.
        """
        check_cancelled(cancellable)
        requests = as_requests(requests)
        try:
            return self.resolve(requests)
        except MissingDependencies as exc:
            if exc.files:
                raise
            missing = exc

        logger.info("%s", missing)
        await self.install(missing.packages, terminal=terminal, cancellable=cancellable)
        return self.resolve(requests)
