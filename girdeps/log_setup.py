from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

TRACE = 5
TRACE_DIR = "debug"
LOGGER_NAME = "girdeps"

logging.addLevelName(TRACE, "TRACE")


def _trace(self, message, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


logging.Logger.trace = _trace

# stdout carries command output (install argv, exported catalog), so
# every record goes to stderr.
_USER_FMT = "girdeps: %(levelname)s: %(message)s"
_DEBUG_FMT = "%(levelname)s %(name)s: %(message)s"
_FILE_FMT = (
    "%(asctime)s.%(msecs)03d [%(process)d] %(levelname)s "
    "%(name)s:%(funcName)s:%(lineno)d %(message)s"
)
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def console_level(*, debug: bool, trace: bool, verbose: bool) -> int:
    if trace and verbose:
        return TRACE
    if debug or trace:
        return logging.DEBUG
    return logging.INFO


def _trace_file() -> str:
    os.makedirs(TRACE_DIR, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    return os.path.join(TRACE_DIR, f"trace-{timestamp}-{os.getpid()}.log")


def setup_logging(
    *, debug: bool, trace: bool, verbose: bool
) -> logging.Logger:
    """Configure the ``girdeps`` logger tree.

    Calling it again replaces (and closes) the previous handlers, so the
    CLI can reconfigure once the config file has been read.
    """
    root = logging.getLogger(LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(TRACE)

    level = console_level(debug=debug, trace=trace, verbose=verbose)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_USER_FMT if level >= logging.INFO else _DEBUG_FMT))
    root.addHandler(console)

    if trace:
        fh = logging.FileHandler(_trace_file(), encoding="utf-8")
        fh.setLevel(TRACE)
        fh.setFormatter(logging.Formatter(_FILE_FMT, datefmt=_FILE_DATEFMT))
        root.addHandler(fh)
        root.debug("Tracing to %s", fh.baseFilename)

    return root
