"""Human-readable rendering of API responses.

Everything here writes command *results* to stdout (tables, document
pages) — status lines go through :mod:`candlekeep.cli.console` to
stderr.  The functions take the API's JSON dicts as-is; ``--json``
output bypasses this module entirely.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from candlekeep.cli.console import emit_raw, escape, out, print_info, print_success, print_warning
from candlekeep.core.models import TransferOutcome, UserInfo
from candlekeep.exceptions import EnvironmentError
from candlekeep.utils.formatting import plural, short_date, truncate

_STATUS_STYLES: dict[str, str] = {
    "READY": "green",
    "COMPLETED": "green",
    "DRAFT": "yellow",
    "PENDING": "yellow",
    "PROCESSING": "cyan",
    "FAILED": "red",
}


def _import_rich_table() -> type[Any]:
    """Import rich table lazily for rendering."""
    try:
        from rich.table import Table
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Table


def _new_table(*columns: str) -> Any:
    table_class = _import_rich_table()
    table = table_class(show_header=bool(columns), header_style="bold cyan", border_style="dim")
    for column in columns:
        table.add_column(column)
    return table


def format_status(status: str) -> str:
    style = _STATUS_STYLES.get(status.upper())
    return f"[{style}]{escape(status)}[/{style}]" if style else escape(status)


def _report_not_found(body: dict[str, Any]) -> None:
    missing = body.get("notFound") or []
    if missing:
        out.print(f"\n[yellow]Items not found[/yellow]: {escape(', '.join(missing))}")


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

def render_whoami(user: UserInfo) -> None:
    table = _new_table()
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Email", escape(user.email))
    if user.name:
        table.add_row("Name", escape(user.name))
    table.add_row("Tier", escape(user.tier))
    table.add_row("Items", f"{user.item_count} / {user.item_limit}")
    table.add_row("User ID", escape(user.id))
    out.print(table)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

def _item_status(item: dict[str, Any]) -> str:
    status = item.get("status")
    if not status:
        status = (item.get("latestJob") or {}).get("status")
    return status or "-"


def _enrich_marker(item: dict[str, Any]) -> str:
    if item.get("needsEnrichment"):
        return "[yellow]⚠[/yellow]"
    if item.get("enrichmentConfidence") is not None:
        return "[green]✓[/green]"
    return "[dim]-[/dim]"


def render_items(body: dict[str, Any]) -> None:
    items: list[dict[str, Any]] = body.get("items") or []
    if not items:
        out.print("[dim]No items found.[/dim]")
        return

    table = _new_table("ID", "Title", "Pages", "Status", "Enrich")
    for item in items:
        table.add_row(
            escape(item.get("id", "")),
            escape(item.get("title", "")),
            str(item.get("pageCount", "-")),
            format_status(_item_status(item)),
            _enrich_marker(item),
        )
    out.print(table)
    out.print(f"\n[bold]{plural(len(items), 'item')}[/bold]")

    queue: list[dict[str, Any]] = body.get("enrichmentQueue") or []
    if queue:
        out.print("\n[bold yellow]Enrichment Queue:[/bold yellow]")
        for entry in queue:
            out.print(
                f"  [yellow]⚠[/yellow] [dim]{escape(entry.get('title', ''))}[/dim] "
                f"({entry.get('pageCount', '?')} pages)"
            )


def render_item_content(body: dict[str, Any]) -> None:
    """Print pages as raw markdown with light separators."""
    rule = "─" * 60
    for item in body.get("items") or []:
        out.print(f"\n[dim]{rule}[/dim]")
        out.print(f"[bold cyan]{escape(item.get('title', ''))}[/bold cyan]")
        out.print(f"[dim]ID: {escape(item.get('id', ''))}[/dim] | {item.get('pageCount', '?')} pages")
        out.print(f"[dim]{rule}[/dim]")

        pages = item.get("pages") or []
        if not pages:
            out.print("[yellow]No pages available.[/yellow]")
            continue
        for page in pages:
            out.print(f"\n[bold blue]── Page {page.get('pageNum', '?')} ──[/bold blue]\n")
            content = page.get("content")
            if content is None:
                out.print("[dim](No content)[/dim]")
            else:
                emit_raw(content if content.endswith("\n") else content + "\n")
    _report_not_found(body)


def render_toc(body: dict[str, Any]) -> None:
    for item in body.get("items") or []:
        out.print(f"\n[dim]{'=' * 60}[/dim] [bold cyan]{escape(item.get('title', ''))}[/bold cyan]")
        out.print(f"[dim]ID: {escape(item.get('id', ''))}[/dim] | {item.get('pageCount', '?')} pages")
        out.print(f"[dim]{'=' * 60}[/dim]")
        entries = item.get("toc") or []
        if not entries:
            out.print("[yellow]No table of contents available.[/yellow]")
            continue
        for entry in entries:
            indent = "  " * int(entry.get("level") or 0)
            out.print(f"{indent}{escape(entry.get('title', ''))}[dim] (p. {entry.get('page', '?')})[/dim]")
    _report_not_found(body)


def render_deleted(body: dict[str, Any], kind: str) -> None:
    deleted: list[str] = body.get("deleted") or []
    missing: list[str] = body.get("notFound") or []
    storage_errors: list[str] = body.get("storageErrors") or []
    if deleted:
        print_success(f"Deleted {plural(len(deleted), kind)}: {escape(', '.join(deleted))}")
    if missing:
        print_warning(f"Not found: {escape(', '.join(missing))}")
    if storage_errors:
        print_warning(f"Storage cleanup failed for: {escape(', '.join(storage_errors))}")


def render_upload_outcome(outcome: TransferOutcome) -> None:
    print_success(f"Added: {escape(outcome.title)} (ID: [cyan]{escape(outcome.item_id)}[/cyan])")
    print_info(f"Processing job created: {escape(outcome.job_id)} ({escape(outcome.job_status)})")


def render_enriched(body: dict[str, Any], toc_entries: int | None) -> None:
    item: dict[str, Any] = body.get("item") or {}
    print_success(f"Enriched: {escape(item.get('title', ''))} (ID: [cyan]{escape(item.get('id', ''))}[/cyan])")
    if item.get("author"):
        print_info(f"Author: {escape(item['author'])}")
    if item.get("description"):
        print_info(f"Description: {escape(truncate(item['description'], 80))}")
    if toc_entries is not None:
        print_info(f"TOC: {toc_entries} entries added")
    if item.get("enrichmentConfidence") is not None:
        print_info(f"Confidence: {float(item['enrichmentConfidence']) * 100:.1f}%")
    if item.get("needsEnrichment"):
        print_warning("Still flagged for enrichment (confidence < 80%)")


def render_created(body: dict[str, Any]) -> None:
    item_id = escape(body.get("id", ""))
    print_success(f"Created: {escape(body.get('title', ''))} (ID: [cyan]{item_id}[/cyan])")
    out.print(f"  Pages: {body.get('pageCount', 0)}\n")
    out.print(f"  To add content: ck items put {item_id} --file content.md")
    out.print(f"  To view:        ck items get {item_id}")


def render_content_updated(body: dict[str, Any]) -> None:
    print_success(
        f"Updated: {escape(body.get('title', ''))} (ID: [cyan]{escape(body.get('id', ''))}[/cyan])"
    )
    out.print(f"  Version: {body.get('version', '?')}")
    out.print(f"  Pages: {body.get('pageCount', '?')}")


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

def render_sources(body: dict[str, Any]) -> None:
    sources: Sequence[dict[str, Any]] = body.get("sources") or []
    if not sources:
        out.print("[dim]No sources found.[/dim]")
        return

    table = _new_table("ID", "Author", "Content", "URL", "Date")
    for source in sources:
        author = source.get("authorHandle") or source.get("authorName") or "-"
        table.add_row(
            escape(source.get("id", "")),
            escape(author),
            escape(truncate(source.get("content"), 50)),
            escape(source.get("sourceUrl") or "-"),
            short_date(source.get("createdAt")),
        )
    out.print(table)
    total = int(body.get("total", len(sources)))
    out.print(f"\n[bold]{plural(total, 'source')}[/bold] (showing {len(sources)})")
