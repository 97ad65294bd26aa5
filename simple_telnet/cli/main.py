"""Main entry point for the simple telnet CLI."""

from __future__ import annotations

from re import compile as re_compile, error as re_error
from sys import stdout as sys_stdout
from typing import TYPE_CHECKING, Any

from simple_telnet.batch import HostTarget, run_batch

from .args import parse_args
from .console import log
from .files import FileReader, FileWriter, render_csv, render_json, render_plain

if TYPE_CHECKING:
    from argparse import Namespace as Arguments
    from collections.abc import Sequence

EXIT_OK = 0
EXIT_FAILED_HOSTS = 1
EXIT_USAGE = 2


def collect_targets(args: Arguments) -> list[HostTarget]:
    """Build the host list from ``--host`` arguments and the input file.

    Returns:
        Targets in the order given, hosts from arguments first

    Raises:
        ValueError: If an input row has no host
    """
    defaults = {"port": args.port, "username": args.username, "password": args.password}
    rows: list[dict[str, Any]] = [{"host": host} for host in args.host]
    if args.input is not None:
        rows.extend(FileReader(args.input, args.input_format).data)
    return [HostTarget.from_row(row, **defaults) for row in rows]


def session_options(args: Arguments) -> dict[str, Any]:
    """Translate the arguments into options shared by every session.

    Raises:
        ValueError: If the prompt is not a valid regular expression
    """
    options: dict[str, Any] = {
        "timeout": args.timeout or None,
        "connect_timeout": args.connect_timeout or None,
        "wait_time": args.wait_time,
    }
    if args.prompt:
        try:
            options["prompt"] = re_compile(args.prompt)
        except re_error as e:
            msg = f"Invalid prompt pattern {args.prompt!r}: {e}"
            raise ValueError(msg) from e
    return options


async def main(argv: Sequence[str] | None = None) -> int:
    """Run the commands on every host and report the results.

    Returns:
        Exit status, non-zero if any host failed
    """
    args = parse_args(argv)

    if args.output is None and args.output_format == "xlsx":
        log.error("Writing xlsx needs an --output file")
        return EXIT_USAGE

    try:
        targets = collect_targets(args)
        options = session_options(args)
    except (OSError, ValueError) as e:
        log.error("Unable to prepare batch: %s", e)  # noqa: TRY400
        return EXIT_USAGE

    log.info("Running %d commands on %d hosts", len(args.command), len(targets))
    results = await run_batch(targets, args.command, args.concurrency, **options)
    rows = [result.as_dict() for result in results]

    if args.output is not None:
        FileWriter(args.output, args.output_format, rows)
        log.info("Results written to %s", args.output)
    else:
        match args.output_format:
            case "csv":
                sys_stdout.write(render_csv(rows))
            case "json":
                sys_stdout.write(render_json(rows) + "\n")
            case _:
                sys_stdout.write(render_plain(rows))

    return EXIT_OK if all(result.success for result in results) else EXIT_FAILED_HOSTS
