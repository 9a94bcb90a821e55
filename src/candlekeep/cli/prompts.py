"""Interactive prompts for the CLI layer.

* Deletion confirmations (``items remove``, ``sources delete``).
* The login interaction: browser hand-off and manual key entry.

questionary is imported lazily so commands that never prompt keep
working without it.
"""

from __future__ import annotations

import logging
import webbrowser
from collections.abc import Sequence
from typing import Any

from candlekeep.cli.console import console, escape
from candlekeep.exceptions import EnvironmentError

logger = logging.getLogger(__name__)


def _import_questionary() -> Any:
    """Import questionary lazily for interactive prompts."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


# ---------------------------------------------------------------------------
# Confirmations
# ---------------------------------------------------------------------------

def confirm_deletion(kind: str, ids: Sequence[str]) -> bool:
    """List *ids* and ask for confirmation; ``False`` on No / Esc / Ctrl+C."""
    questionary = _import_questionary()

    console.print(f"[yellow]This will delete {len(ids)} {kind}(s):[/yellow]")
    for item_id in ids:
        console.print(f"  - {escape(item_id)}")
    console.print()

    answer: bool | None = questionary.confirm("Are you sure?", default=False).ask()
    return bool(answer)


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class ConsoleLoginInteraction:
    """Terminal implementation of :class:`~candlekeep.core.protocols.LoginInteraction`.

    Parameters
    ----------
    open_browser:
        Try to open the auth URL with :mod:`webbrowser`.
    """

    def __init__(self, *, open_browser: bool = True) -> None:
        self._open_browser = open_browser

    def show_auth_url(self, url: str) -> None:
        console.print("[cyan]Opening browser for authentication...[/cyan]")
        console.print(f"If browser doesn't open, visit: [underline]{escape(url)}[/underline]")
        if self._open_browser and not _open(url):
            console.print("\n[yellow]Could not open browser automatically.[/yellow]")
        console.print("\n[dim]Waiting for authorization... (Ctrl+C to abort)[/dim]")

    def browser_flow_failed(self, error: Exception) -> None:
        console.print("\n[yellow]Browser authentication failed.[/yellow]")
        console.print(escape(error))

    async def prompt_credential(self, base_url: str) -> str | None:
        questionary = _import_questionary()

        console.print("\nTo authenticate manually:")
        console.print(f"1. Go to [underline]{escape(base_url)}[/underline] and log in")
        console.print("2. Navigate to Settings > API Keys")
        console.print("3. Create a new API key and copy it")
        console.print()

        answer: str | None = await questionary.password("Enter your API key:").ask_async()
        return answer

    def validating(self) -> None:
        console.print("[dim]Validating API key...[/dim]")


def _open(url: str) -> bool:
    try:
        return webbrowser.open(url)
    except webbrowser.Error as exc:
        logger.debug("webbrowser failed: %s", exc)
        return False
