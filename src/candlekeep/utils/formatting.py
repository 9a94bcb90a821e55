"""Pure text formatting helpers used when rendering API data."""

from __future__ import annotations


def format_size(num_bytes: int | None) -> str:
    """Render a byte count as ``B``, ``KB`` or ``MB``; ``"Unknown"`` for ``None``."""
    if num_bytes is None:
        return "Unknown"
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 * 1024):.1f} MB"


def truncate(text: str | None, limit: int, *, placeholder: str = "-") -> str:
    """Shorten *text* to *limit* characters, ending with ``...`` when cut."""
    if not text:
        return placeholder
    if len(text) <= limit:
        return text
    return text[: max(limit - 3, 0)] + "..."


def short_date(timestamp: str | None) -> str:
    """Keep the ``YYYY-MM-DD`` part of an ISO timestamp."""
    if not timestamp:
        return "-"
    return timestamp[:10]


def plural(count: int, singular: str, plural_form: str | None = None) -> str:
    """Return ``"1 item"`` / ``"3 items"``."""
    word = singular if count == 1 else (plural_form or f"{singular}s")
    return f"{count} {word}"
