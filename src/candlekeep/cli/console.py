"""CLI console helpers with optional Rich support.

Two streams are used:

* **stderr** — status lines, warnings, progress bars (``console``).
* **stdout** — command results: tables, JSON and raw document content
  (``out``), so ``ck items get ID > file.md`` stays clean.

Rich is imported lazily so bootstrap paths (``--help``, ``--version``)
keep working when it is not installed.
"""

from __future__ import annotations

import json
import re
import sys
from typing import Any

from candlekeep.exceptions import EnvironmentError

_MARKUP_TAG = re.compile(r"\[/?[a-z ]+\]")


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def get_rich_console(*, stderr: bool = True) -> Any:
    """Create a Rich console instance targeting stderr (or stdout)."""
    console_class = _load_rich_console_class()
    return console_class(stderr=stderr, highlight=False)


def escape(text: object) -> str:
    """Escape user data so Rich does not treat ``[...]`` as markup."""
    try:
        from rich.markup import escape as rich_escape
    except ModuleNotFoundError:
        return str(text)
    return rich_escape(str(text))


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with plain-text fallback."""

    def __init__(self, *, stderr: bool) -> None:
        self._stderr = stderr

    def print(self, *objects: object) -> None:
        """Render with Rich when available, else strip markup and print."""
        try:
            rich_console = get_rich_console(stderr=self._stderr)
        except EnvironmentError:
            stream = sys.stderr if self._stderr else sys.stdout
            plain = [_MARKUP_TAG.sub("", o) if isinstance(o, str) else o for o in objects]
            print(*plain, file=stream)
            return
        rich_console.print(*objects)


console = _ConsoleProxy(stderr=True)
out = _ConsoleProxy(stderr=False)


# ---------------------------------------------------------------------------
# Status lines
# ---------------------------------------------------------------------------

def print_success(message: str) -> None:
    console.print(f"[bold green]✓[/bold green] {message}")


def print_warning(message: str) -> None:
    console.print(f"[bold yellow]![/bold yellow] {message}")


def print_info(message: str) -> None:
    console.print(f"[bold cyan]i[/bold cyan] {message}")


def print_error(message: str) -> None:
    console.print(f"[bold red]✗[/bold red] {message}")


# ---------------------------------------------------------------------------
# Machine-readable output
# ---------------------------------------------------------------------------

def emit_json(data: Any) -> None:
    """Write *data* as pretty JSON to stdout (never coloured)."""
    sys.stdout.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def emit_raw(text: str) -> None:
    """Write *text* to stdout unchanged."""
    sys.stdout.write(text)
    sys.stdout.flush()
