"""Validation of ``items enrich`` arguments.

Pure functions only: they either return clean values or raise
:class:`~candlekeep.exceptions.InvalidInputError` before any request
is made.
"""

from __future__ import annotations

import json
from typing import Any

from candlekeep.core.models import TocEntry
from candlekeep.exceptions import InvalidInputError

TOC_EXAMPLE: str = '[{"title":"Chapter 1","page":1,"level":1}]'


def parse_toc(text: str) -> list[TocEntry]:
    """Parse and validate a JSON table of contents.

    Raises
    ------
    InvalidInputError
        On malformed JSON, a blank title, ``page < 1`` or ``level < 1``.
    """
    try:
        raw: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInputError(
            f"Invalid TOC JSON: {exc.msg}",
            hint=f"Expected format: {TOC_EXAMPLE}",
        ) from exc

    if not isinstance(raw, list):
        raise InvalidInputError(
            "Invalid TOC JSON: expected an array.",
            hint=f"Expected format: {TOC_EXAMPLE}",
        )

    entries: list[TocEntry] = []
    for item in raw:
        if not isinstance(item, dict):
            raise InvalidInputError(
                "Invalid TOC JSON: every entry must be an object.",
                hint=f"Expected format: {TOC_EXAMPLE}",
            )
        entries.append(_parse_entry(item))
    return entries


def _parse_entry(item: dict[str, Any]) -> TocEntry:
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        raise InvalidInputError("TOC entry title cannot be empty.")

    page = item.get("page")
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        raise InvalidInputError("TOC entry page must be >= 1.")

    level = item.get("level")
    if level is not None and (not isinstance(level, int) or isinstance(level, bool) or level < 1):
        raise InvalidInputError("TOC entry level must be >= 1.")

    return TocEntry(title=title, page=page, level=level)


def validate_enrichment(
    *,
    title: str | None,
    author: str | None,
    description: str | None,
    confidence: float | None,
    toc: str | None,
) -> list[TocEntry] | None:
    """Check an enrich request and return the parsed TOC (if given)."""
    if title is None and author is None and description is None and toc is None:
        raise InvalidInputError(
            "At least one of --title, --author, --description, or --toc is required.",
        )
    if confidence is not None and not 0.0 <= confidence <= 1.0:
        raise InvalidInputError("Confidence must be between 0.0 and 1.0.")
    return parse_toc(toc) if toc is not None else None
