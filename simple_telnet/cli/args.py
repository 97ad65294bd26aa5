"""Command line argument parser for simple telnet.

Arguments are declared as data in ``simple_telnet.constants`` and grouped the
same way in the help output.
"""

from __future__ import annotations

from argparse import (
    ArgumentParser,
    Namespace as Arguments,
    RawDescriptionHelpFormatter as Formatter,
)
from sys import argv as sys_argv, exit as sys_exit
from typing import TYPE_CHECKING

from simple_telnet.constants import (
    CLI_ARGUMENTS,
    CLI_HELP_DESCRIPTION,
    CLI_HELP_EPILOGUE,
    CLI_HELP_NAME,
    MAX_PORT,
    MIN_PORT,
)

from .console import setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence


def build_parser() -> ArgumentParser:
    """Create the argument parser from the declared argument groups.

    Returns:
        Configured ArgumentParser instance
    """
    parser = ArgumentParser(
        description=CLI_HELP_DESCRIPTION,
        epilog=CLI_HELP_EPILOGUE,
        prog=CLI_HELP_NAME,
        formatter_class=Formatter,
    )
    for category_name, args in CLI_ARGUMENTS.items():
        category = parser.add_argument_group(category_name)
        for flags, kwargs in args:
            category.add_argument(*flags, **kwargs)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Arguments:
    """Parse and check the command line, then set up logging.

    Args:
        argv: Arguments to parse instead of ``sys.argv``

    Returns:
        The parsed arguments
    """
    parser = build_parser()
    argv = sys_argv[1:] if argv is None else list(argv)

    # Show help if no arguments are provided
    if not argv:
        parser.print_help()
        sys_exit(0)

    parsed_args = parser.parse_args(argv)

    if not parsed_args.host and parsed_args.input is None:
        parser.error("at least one --host or an --input file is required")
    if not MIN_PORT <= parsed_args.port <= MAX_PORT:
        parser.error(f"--port must be between {MIN_PORT} and {MAX_PORT}")
    if parsed_args.concurrency < 1:
        parser.error("--concurrency must be at least 1")

    # -v shows session events, -vv telnet negotiation as well
    verbose: int = parsed_args.verbose
    if verbose >= 2:  # noqa: PLR2004
        setup_logging("DEBUG")
    elif verbose == 1:
        setup_logging("INFO")
    else:
        setup_logging("WARNING")

    return parsed_args
