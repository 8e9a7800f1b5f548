# girdeps/process.py
"""Subprocess execution with cooperative cancellation."""
from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shlex
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

from girdeps.errors import OperationCancelled
from girdeps.log_setup import TRACE

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Cancellable:
    """A cancellation token shared by a chain of async operations.

    Triggering it makes the operations raise OperationCancelled at their
    next check, and interrupts any subprocess wait in progress.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()

    async def wait(self) -> None:
        await self._event.wait()


def check_cancelled(cancellable: Cancellable | None) -> None:
    if cancellable is not None:
        cancellable.raise_if_cancelled()


def shell_join(argv: Sequence[str]) -> str:
    """Quote every token so a POSIX shell splits the string back into argv."""
    return " ".join(shlex.quote(arg) for arg in argv)


def _build_env(overrides: Mapping[str, str]) -> dict[str, str]:
    merged = os.environ.copy()
    merged.update(overrides)
    return merged


async def wait_cancellable(aw: Awaitable[T], cancellable: Cancellable | None) -> T:
    """Await ``aw`` unless ``cancellable`` fires first.

    Raises:
        OperationCancelled: If the token fired before ``aw`` completed.
    """
    if cancellable is None:
        return await aw
    if cancellable.cancelled:
        if asyncio.iscoroutine(aw):
            aw.close()
        raise OperationCancelled()

    work = asyncio.ensure_future(aw)
    cancelled = asyncio.ensure_future(cancellable.wait())
    try:
        await asyncio.wait({work, cancelled}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = [f for f in (work, cancelled) if not f.done()]
        for f in pending:
            f.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if work.done() and not work.cancelled():
        return work.result()
    raise OperationCancelled()


@dataclass
class ProcessResult:
    """Exit status and captured output of a finished subprocess."""

    argv: list[str]
    returncode: int
    stdout: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessRunner:
    """Spawns subprocesses and guarantees none outlives its operation."""

    async def run(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
        cancellable: Cancellable | None = None,
    ) -> ProcessResult:
        """Run ``argv`` to completion.

        Args:
            argv: Program and arguments. Never interpreted by a shell.
            env: Variables set on top of the current environment.
            capture: Capture stdout (stdin is closed). When False the
                child inherits stdin/stdout/stderr, for interactive
                commands.
            cancellable: Token that aborts the wait and kills the child.

        Returns:
            The exit status and, when captured, decoded stdout.

        Raises:
            OperationCancelled: If the token fired first.
            OSError: If the program cannot be spawned.
        """
        check_cancelled(cancellable)
        argv = list(argv)
        logger.log(TRACE, "Spawning: %s", shell_join(argv))

        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL if capture else None,
            stdout=asyncio.subprocess.PIPE if capture else None,
            env=_build_env(env) if env else None,
        )
        try:
            if capture:
                stdout, _ = await wait_cancellable(proc.communicate(), cancellable)
                output = stdout.decode("utf-8", errors="replace")
            else:
                await wait_cancellable(proc.wait(), cancellable)
                output = ""
        finally:
            if proc.returncode is None:
                logger.debug("Killing pid=%d: %s", proc.pid, argv[0])
                try:
                    with contextlib.suppress(ProcessLookupError):
                        proc.kill()
                except PermissionError:
                    # pkexec children run as root once authorized
                    logger.warning(
                        "Cannot kill pid=%d (%s): it runs with elevated privileges",
                        proc.pid, argv[0],
                    )
                else:
                    await proc.wait()

        logger.log(TRACE, "Exit %d from %s: %r", proc.returncode, argv[0], output[:500])
        return ProcessResult(argv, proc.returncode, output)
