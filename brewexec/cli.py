"""Command-line entry point for bundle exec.

Usage::

    brewexec exec [--file PATH | --global] COMMAND [ARGS...]
    brewexec sh   [--file PATH | --global]
    brewexec env  [--file PATH | --global]
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import typing as typ

from brewexec._config import DEBUG_VAR, read_flag
from brewexec.errors import BundleExecError
from brewexec.invocation import BundleExec, InvocationRequest, Subcommand
from brewexec.manifest import ManifestLocation

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_SUBCOMMAND_HELP = {
    Subcommand.EXEC: "Run a command in an environment built from the Brewfile.",
    Subcommand.SH: "Start your shell in an environment built from the Brewfile.",
    Subcommand.ENV: "Print the environment built from the Brewfile as exports.",
}


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    source = common.add_mutually_exclusive_group()
    source.add_argument(
        "--file",
        help="Read the Brewfile from this path, or from stdin when '-'.",
    )
    source.add_argument(
        "--global",
        dest="use_global",
        action="store_true",
        help="Read the Brewfile from HOMEBREW_BUNDLE_FILE_GLOBAL or ~/.Brewfile.",
    )
    common.add_argument(
        "--skip-missing",
        action="store_true",
        help="Ignore Brewfile formulae that are not installed.",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log each resolution step to stderr.",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the ``brewexec`` command."""
    parser = argparse.ArgumentParser(
        prog="brewexec",
        description="Run commands with the dependencies declared in a Brewfile.",
    )
    subparsers = parser.add_subparsers(dest="subcommand", required=True)
    common = _common_options()
    for subcommand, help_text in _SUBCOMMAND_HELP.items():
        sub = subparsers.add_parser(
            subcommand.value,
            parents=[common],
            help=help_text,
            description=help_text,
        )
        if subcommand is Subcommand.EXEC:
            sub.add_argument(
                "command",
                nargs=argparse.REMAINDER,
                help="Command to run followed by its arguments.",
            )
    return parser


def _configure_logging(*, verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _request_from_args(args: argparse.Namespace) -> InvocationRequest:
    command = list(getattr(args, "command", None) or [])
    if command[:1] == ["--"]:
        command = command[1:]
    return InvocationRequest(
        argv=tuple(command),
        subcommand=Subcommand(args.subcommand),
        location=ManifestLocation(file=args.file, use_global=args.use_global),
        skip_missing=args.skip_missing,
    )


def main(
    argv: cabc.Sequence[str] | None = None,
    *,
    bundle: BundleExec | None = None,
) -> int:
    """Run the command-line interface.

    Parameters
    ----------
    argv:
        Arguments excluding the program name; defaults to ``sys.argv[1:]``.
    bundle:
        Pre-configured invocation runner, mainly for tests.

    Returns
    -------
    int
        ``0`` after printing the environment, ``1`` on any failure. A
        successful ``exec`` or ``sh`` never returns.
    """
    args = build_parser().parse_args(argv)
    _configure_logging(verbose=args.verbose or read_flag(os.environ, DEBUG_VAR))
    runner = bundle if bundle is not None else BundleExec()
    try:
        return runner.run(_request_from_args(args))
    except BundleExecError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


__all__ = ["build_parser", "main"]
