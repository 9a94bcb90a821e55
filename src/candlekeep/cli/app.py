"""CLI application entry point and command routing for ``ck``.

This module is the **sole error boundary** for the entire application.
It catches :class:`~candlekeep.exceptions.CandleKeepError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — handlers in :mod:`candlekeep.cli.commands`
  delegate to the core and infrastructure layers.
* Handler modules are imported lazily so ``--help`` and ``--version``
  stay fast and work without the optional UI libraries.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from collections.abc import Callable

from candlekeep.cli import exit_codes
from candlekeep.cli.console import console, emit_json, escape
from candlekeep.cli.logging_setup import setup_logging
from candlekeep.exceptions import CandleKeepError
from candlekeep.version import __version__

logger = logging.getLogger(__name__)

Handler = Callable[..., int]

# (group, command) -> "module:function"
_HANDLERS: dict[tuple[str, str], str] = {
    ("auth", "login"): "candlekeep.cli.commands.auth:handle_login",
    ("auth", "logout"): "candlekeep.cli.commands.auth:handle_logout",
    ("auth", "whoami"): "candlekeep.cli.commands.auth:handle_whoami",
    ("items", "list"): "candlekeep.cli.commands.items:handle_list",
    ("items", "toc"): "candlekeep.cli.commands.items:handle_toc",
    ("items", "read"): "candlekeep.cli.commands.items:handle_read",
    ("items", "add"): "candlekeep.cli.commands.items:handle_add",
    ("items", "remove"): "candlekeep.cli.commands.items:handle_remove",
    ("items", "enrich"): "candlekeep.cli.commands.items:handle_enrich",
    ("items", "flag"): "candlekeep.cli.commands.items:handle_flag",
    ("items", "create"): "candlekeep.cli.commands.items:handle_create",
    ("items", "get"): "candlekeep.cli.commands.items:handle_get",
    ("items", "put"): "candlekeep.cli.commands.items:handle_put",
    ("sources", "list"): "candlekeep.cli.commands.sources:handle_list",
    ("sources", "delete"): "candlekeep.cli.commands.sources:handle_delete",
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

class _ArgumentParser(argparse.ArgumentParser):
    """``ArgumentParser`` that exits with ``EX_USAGE`` on bad arguments."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(exit_codes.USAGE_ERROR, f"{self.prog}: error: {message}\n")


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError("must be greater than zero")
    return number


def _json_flag() -> argparse.ArgumentParser:
    # Leaf parsers accept --json too; SUPPRESS keeps the global value intact.
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--json",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Output in JSON format.",
    )
    return parent


def _build_parser() -> _ArgumentParser:
    """Construct the ``ck`` argument parser.

    Layout::

        ck [--json] [-v] auth {login,logout,whoami}
        ck [--json] [-v] items {list,toc,read,add,remove,enrich,flag,create,get,put}
        ck [--json] [-v] sources {list,delete}
        ck doctor
    """
    common = [_json_flag()]

    parser = _ArgumentParser(
        prog="ck",
        description="CandleKeep CLI - Manage your document library.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--json", action="store_true", help="Output in JSON format.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug).",
    )
    groups = parser.add_subparsers(dest="group", metavar="COMMAND")

    # -- auth ---------------------------------------------------------------
    auth = groups.add_parser("auth", help="Authentication commands.")
    auth_cmds = auth.add_subparsers(dest="command", metavar="SUBCOMMAND")
    login = auth_cmds.add_parser("login", parents=common, help="Login via browser authentication.")
    login.add_argument(
        "--no-browser",
        action="store_true",
        help="Print the sign-in URL instead of opening a browser.",
    )
    login.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        metavar="SECONDS",
        help="Stop waiting for the browser after SECONDS and ask for the key instead.",
    )
    auth_cmds.add_parser("logout", parents=common, help="Remove stored credentials.")
    auth_cmds.add_parser("whoami", parents=common, help="Show current user information.")

    # -- items --------------------------------------------------------------
    items = groups.add_parser("items", help="Item management commands.")
    item_cmds = items.add_subparsers(dest="command", metavar="SUBCOMMAND")
    item_cmds.add_parser("list", parents=common, help="List all items in your library.")

    toc = item_cmds.add_parser("toc", parents=common, help="Show table of contents for items.")
    toc.add_argument("ids", help="Comma-separated item IDs.")

    read = item_cmds.add_parser("read", parents=common, help="Read content from items.")
    read.add_argument("ids", help='Item IDs with page ranges (e.g. "id:1-5,id2:all").')

    add = item_cmds.add_parser("add", parents=common, help="Upload a PDF or markdown file.")
    add.add_argument("file", help="Path to the file.")

    remove = item_cmds.add_parser("remove", parents=common, help="Remove items from your library.")
    remove.add_argument("ids", help="Comma-separated item IDs.")
    remove.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt.")

    enrich = item_cmds.add_parser(
        "enrich", parents=common, help="Enrich item metadata (title, author, description, TOC).",
    )
    enrich.add_argument("id", help="Item ID.")
    enrich.add_argument("--title", help="New title.")
    enrich.add_argument("--author", help="Author name.")
    enrich.add_argument("--description", help="Description.")
    enrich.add_argument("--confidence", type=float, help="Confidence score (0.0-1.0).")
    enrich.add_argument(
        "--toc",
        help='Table of contents as JSON: [{"title":"Chapter 1","page":1,"level":1}]',
    )

    flag = item_cmds.add_parser("flag", parents=common, help="Flag item as needing enrichment.")
    flag.add_argument("id", help="Item ID.")

    create = item_cmds.add_parser("create", parents=common, help="Create a new markdown document.")
    create.add_argument("title", help="Document title.")
    create.add_argument("-d", "--description", help="Description.")
    create.add_argument("-c", "--content", help="Initial content.")

    get = item_cmds.add_parser("get", parents=common, help="Print full document content to stdout.")
    get.add_argument("id", help="Item ID.")

    put = item_cmds.add_parser("put", parents=common, help="Replace document content (file or stdin).")
    put.add_argument("id", help="Item ID.")
    put.add_argument("-f", "--file", help="Read content from file instead of stdin.")

    # -- sources ------------------------------------------------------------
    sources = groups.add_parser("sources", help="Source management commands.")
    source_cmds = sources.add_subparsers(dest="command", metavar="SUBCOMMAND")
    source_list = source_cmds.add_parser("list", parents=common, help="List saved sources.")
    source_list.add_argument("--limit", type=int, default=None, help="Maximum number of sources.")
    source_delete = source_cmds.add_parser("delete", parents=common, help="Delete sources.")
    source_delete.add_argument("ids", help="Comma-separated source IDs.")
    source_delete.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt.")

    # -- doctor -------------------------------------------------------------
    groups.add_parser("doctor", parents=common, help="Environment diagnostics.")

    parser.set_defaults(_group_parsers={"auth": auth, "items": items, "sources": sources})
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _resolve_handler(group: str, command: str) -> Handler:
    """Import the handler for ``ck <group> <command>`` on demand."""
    module_name, _, func_name = _HANDLERS[(group, command)].partition(":")
    module = importlib.import_module(module_name)
    return getattr(module, func_name)


def _handle_doctor(args: argparse.Namespace) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from candlekeep.cli.doctor import run_doctor

    return run_doctor(json_output=args.json)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the ``ck`` CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.group is None:
        parser.print_help()
        return exit_codes.SUCCESS

    if args.group == "doctor":
        return _handle_doctor(args)

    if args.command is None:
        args._group_parsers[args.group].print_help()
        return exit_codes.USAGE_ERROR

    from candlekeep.infra.config_store import ConfigStore

    store = ConfigStore()
    logger.debug("Dispatching %s %s (api=%s)", args.group, args.command, store.api_url)
    handler = _resolve_handler(args.group, args.command)
    return handler(args, store)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def _report_error(exc: CandleKeepError, *, json_output: bool) -> None:
    if json_output:
        emit_json({"error": str(exc), "hint": exc.hint})
        return
    console.print(f"[bold red]Error:[/bold red] {escape(exc)}")
    if exc.hint:
        console.print(f"[yellow]Hint:[/yellow] {escape(exc.hint)}")


def cli(argv: list[str] | None = None) -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    raw_args = sys.argv[1:] if argv is None else argv
    json_output = "--json" in raw_args
    try:
        code = main(raw_args)
        sys.exit(code)
    except CandleKeepError as exc:
        logger.debug("Command failed", exc_info=True)
        _report_error(exc, json_output=json_output)
        sys.exit(exit_codes.for_error(exc))
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Unexpected failure", exc_info=True)
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {escape(exc)}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
