from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from girdeps.catalog import DependencyRequest, dump_catalog
from girdeps.config import ConfigError, load_config
from girdeps.engine import DependencyEngine
from girdeps.errors import GirdepsError, MissingDependencies, OperationCancelled
from girdeps.log_setup import setup_logging
from girdeps.process import Cancellable, shell_join
from girdeps.verify import verify_catalog

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def _request(text: str) -> DependencyRequest:
    try:
        return DependencyRequest.parse(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="girdeps",
        description="Find and install the OS packages providing GObject Introspection bindings",
    )
    parser.add_argument("--config", default=None,
                        help="Path to YAML config file")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug mode (verbose logging)")
    parser.add_argument("--trace", action="store_true",
                        help="Enable trace mode (writes trace file to debug/)")
    parser.add_argument("--verbose", action="store_true",
                        help="With --trace, also send trace output to terminal")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("identity", help="Print the platform identity chain")

    check = sub.add_parser("check", help="Report which bindings are missing")
    check.add_argument("requests", nargs="+", type=_request, metavar="NAMESPACE=VERSION")

    command = sub.add_parser("command", help="Print the command that installs missing bindings")
    command.add_argument("requests", nargs="+", type=_request, metavar="NAMESPACE=VERSION")
    command.add_argument("--terminal", action="store_true",
                         help="Wrap the command to run in a terminal emulator")

    install = sub.add_parser("install", help="Install missing bindings, then load them")
    install.add_argument("requests", nargs="+", type=_request, metavar="NAMESPACE=VERSION")
    install.add_argument("--terminal", action="store_true",
                         help="Run the install command in a terminal emulator")

    export = sub.add_parser("export", help="Write a catalog holding only the given bindings")
    export.add_argument("requests", nargs="+", type=_request, metavar="NAMESPACE=VERSION")
    export.add_argument("-o", "--output", default="-",
                        help="Output file (default: stdout)")

    sub.add_parser("verify", help="Check that catalog packages ship their typelibs")

    return parser.parse_args(argv)


def build_engine(args: argparse.Namespace) -> DependencyEngine:
    """Build the engine from the config file and command-line flags."""
    config = load_config(args.config)
    if args.debug:
        config.debug.enabled = True
    if args.trace:
        config.debug.trace = True
    if args.verbose:
        config.debug.verbose = True
    return DependencyEngine(config=config)


async def _check(engine: DependencyEngine, args: argparse.Namespace) -> int:
    try:
        engine.resolve(args.requests)
    except MissingDependencies as exc:
        print(exc)
        return EXIT_FAILURE
    print("All dependencies are installed.")
    return EXIT_OK


async def _command(
    engine: DependencyEngine, args: argparse.Namespace, cancellable: Cancellable,
) -> int:
    try:
        engine.resolve(args.requests)
    except MissingDependencies as exc:
        if exc.files:
            logger.error("Unresolved files: %s", exc)
            return EXIT_FAILURE
        argv = await engine.install_argv(
            exc.packages, terminal=args.terminal, cancellable=cancellable,
        )
        print(shell_join(argv))
        return EXIT_OK
    logger.info("All dependencies are installed")
    return EXIT_OK


async def _install(
    engine: DependencyEngine, args: argparse.Namespace, cancellable: Cancellable,
) -> int:
    found = await engine.ensure(args.requests, terminal=args.terminal, cancellable=cancellable)
    for namespace in sorted(found):
        print(f"{namespace}: loaded")
    return EXIT_OK


def _export(engine: DependencyEngine, args: argparse.Namespace) -> int:
    text = dump_catalog(engine.catalog.subset(args.requests))
    if args.output == "-":
        sys.stdout.write(text)
    else:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info("Wrote %s", args.output)
    return EXIT_OK


async def _verify(engine: DependencyEngine, cancellable: Cancellable) -> int:
    results = await verify_catalog(
        engine.catalog, engine.identity_chain(), engine.runner, cancellable,
    )
    ok = True
    for r in results:
        if r.passed is None:
            icon = "-"
        elif r.passed:
            icon = "✓"
        else:
            icon = "✗"
            ok = False
        print(f"  {icon} {r.namespace} {r.version}: {r.detail}")
    return EXIT_OK if ok else EXIT_FAILURE


async def run_command(
    engine: DependencyEngine, args: argparse.Namespace, cancellable: Cancellable,
) -> int:
    """Dispatch a parsed command. Errors propagate to the caller."""
    if args.command == "identity":
        for identity in engine.identity_chain():
            print(identity)
        return EXIT_OK
    if args.command == "check":
        return await _check(engine, args)
    if args.command == "command":
        return await _command(engine, args, cancellable)
    if args.command == "install":
        return await _install(engine, args, cancellable)
    if args.command == "export":
        return _export(engine, args)
    if args.command == "verify":
        return await _verify(engine, cancellable)
    raise ValueError(f"Unknown command: {args.command}")


async def main(argv: list[str] | None = None) -> int:
    """Entry point for the girdeps command."""
    args = _parse_args(argv)
    setup_logging(debug=args.debug, trace=args.trace, verbose=args.verbose)

    try:
        engine = build_engine(args)
    except ConfigError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    debug = engine.config.debug
    if (debug.enabled, debug.trace, debug.verbose) != (args.debug, args.trace, args.verbose):
        setup_logging(debug=debug.enabled, trace=debug.trace, verbose=debug.verbose)

    cancellable = Cancellable()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, cancellable.cancel)

    try:
        return await run_command(engine, args, cancellable)
    except OperationCancelled:
        logger.error("Cancelled")
        return EXIT_CANCELLED
    except GirdepsError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


def run() -> None:
    """Console script wrapper around main()."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
