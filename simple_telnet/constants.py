"""Constants for simple telnet."""

from __future__ import annotations

from pathlib import Path
from re import compile as re_compile
from typing import Any

# Session defaults

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 23
DEFAULT_PROMPT = re_compile(r"[$%#>] \Z")
DEFAULT_LOGIN_PROMPT = re_compile(r"[Ll]ogin[: ]*\Z")
DEFAULT_PASSWORD_PROMPT = re_compile(r"[Pp]ass(?:word|phrase)[: ]*\Z")
DEFAULT_CONNECT_TIMEOUT = 3.0
DEFAULT_TIMEOUT = 10.0
DEFAULT_ENCODING = "utf-8"

# Prompt matching

LARGE_BUFFER_SIZE = 100_000  # Above this, rescans are coalesced
LARGE_BUFFER_HOLDOFF = 1.0  # Seconds between rescans of a large buffer

# Logging

HIDDEN_COMMAND = "<hidden command>"
AYT_REPLY = b"nobody here but us pigeons\r\n"

# Runtime

IDLE_POLL_INTERVAL = 0.05  # Seconds between checks for an idle runtime
DEFERRED_WORKERS = 20

# CLI constants

MIN_PORT = 1
MAX_PORT = 65535

CLI_ARGUMENTS: dict[str, list[tuple[Any]]] = {
    "session": [
        (["-H", "--host"], {"action": "append", "default": [], "help": "Host to connect to (repeatable)"}),
        (["--port"], {"type": int, "default": DEFAULT_PORT, "metavar": "<23>"}),
        (["-u", "--username"], {"help": "Username sent at the login prompt"}),
        (["-P", "--password"], {"help": "Password sent at the password prompt"}),
        (["--prompt"], {"help": "Regular expression matching the shell prompt"}),
    ],
    "operations": [
        (
            ["-C", "--command"],
            {"action": "append", "default": [], "help": "Command to run (repeatable)", "required": True},
        ),
        (["-c", "--concurrency"], {"type": int, "default": 50, "metavar": "<50>"}),
        (["-t", "--timeout"], {"type": float, "default": DEFAULT_TIMEOUT, "metavar": "<10>"}),
        (
            ["--connect-timeout"],
            {"type": float, "default": DEFAULT_CONNECT_TIMEOUT, "metavar": "<3>"},
        ),
        (["-w", "--wait-time"], {"type": float, "default": 0.0, "metavar": "<0>"}),
        (["-v", "--verbose"], {"action": "count", "default": 0}),
    ],
    "files": [
        (["-i", "--input"], {"help": "Input file of hosts", "type": Path}),
        (
            ["-if", "--input-format"],
            {"choices": ["csv", "json", "xlsx"], "default": "csv", "metavar": "<csv>|json|xlsx"},
        ),
        (["-o", "--output"], {"help": "Output file path (default: stdout)", "type": Path}),
        (
            ["-of", "--output-format"],
            {
                "choices": ["csv", "json", "plain", "xlsx"],
                "default": "plain",
                "metavar": "csv|json|<plain>|xlsx",
            },
        ),
    ],
}
CLI_HELP_DESCRIPTION: str = """Simple telnet: run commands on telnet hosts.

Connects to one or more hosts, logs in when credentials are given,
runs each command in turn and collects the output up to the next
prompt. Hosts are driven concurrently on a single event loop.
"""
CLI_HELP_EPILOGUE: str | None = "If an argument has a default, it's shown in <parentheses>."
CLI_HELP_NAME: str = "simple-telnet"
