"""Pure parsing of item-ID lists and the page-range selector language.

Every function in this module is a **pure** transformation — no I/O,
no side effects, fully deterministic.

Grammar accepted by :func:`parse_range_selectors`::

    input    := token (',' token)*
    token    := identifier ':' selector
    selector := "all" | range-list

Range lists (``1-5``, ``1,3,5``, ``1-3,7,10``) are passed through
verbatim — the API knows the page count and validates them.

Parsing is two-pass: every token is classified first, then the
collected problems decide the outcome.  No partial result is ever
returned.
"""

from __future__ import annotations

from candlekeep.core.models import RangeRequest
from candlekeep.exceptions import (
    EmptyIdentifierError,
    EmptyInputError,
    MissingSelectorError,
)

ALL_PAGES: str = "all"

SELECTOR_FORMATS: tuple[tuple[str, str], ...] = (
    ("id:all", "All pages"),
    ("id:1-5", "Pages 1 through 5"),
    ("id:1,3,5", "Specific pages"),
    ("id:1-3,7,10", "Combined ranges"),
)


# ---------------------------------------------------------------------------
# Tokenising
# ---------------------------------------------------------------------------

def split_tokens(text: str) -> list[str]:
    """Split on ``,``, trim whitespace and drop empty tokens."""
    return [part.strip() for part in text.split(",") if part.strip()]


def parse_ids(text: str) -> list[str]:
    """Parse a plain comma-separated ID list.

    Raises
    ------
    EmptyInputError
        When no non-empty ID remains.
    """
    ids = split_tokens(text)
    if not ids:
        raise EmptyInputError("No item IDs provided.")
    return ids


# ---------------------------------------------------------------------------
# Selector lists
# ---------------------------------------------------------------------------

def _selector_help() -> str:
    lines = ["Formats:"]
    lines.extend(f"  • {example:<13} - {meaning}" for example, meaning in SELECTOR_FORMATS)
    return "\n".join(lines)


def _missing_selector_message(tokens: list[str]) -> str:
    example = ",".join(f"{token}:{ALL_PAGES}" for token in tokens)
    return (
        f"Missing page range for: {', '.join(tokens)}\n\n"
        "Every ID must specify a page range. Use 'all' for all pages.\n"
        f"Example: {example}\n\n"
        f"{_selector_help()}"
    )


def parse_range_selectors(text: str) -> list[RangeRequest]:
    """Parse ``"id1:1-5,id2:all"`` into ordered :class:`RangeRequest` items.

    The selector ``all`` (any case) becomes ``page_selector=None``.

    Raises
    ------
    EmptyInputError
        When the input holds no non-empty token.
    EmptyIdentifierError
        When a token has an empty identifier or an empty selector; any
        tokens lacking a ``:`` are listed in the hint.
    MissingSelectorError
        When any token lacks a ``:``; every such token is reported.
    """
    tokens = split_tokens(text)
    if not tokens:
        raise EmptyInputError("No item IDs provided.")

    requests: list[RangeRequest] = []
    missing: list[str] = []
    malformed: list[str] = []

    for token in tokens:
        item_id, sep, selector = token.partition(":")
        if not sep:
            missing.append(token)
            continue

        item_id = item_id.strip()
        selector = selector.strip()
        if not item_id or not selector:
            malformed.append(token)
            continue

        page_selector = None if selector.lower() == ALL_PAGES else selector
        requests.append(RangeRequest(item_id=item_id, page_selector=page_selector))

    if malformed:
        hint = _selector_help()
        if missing:
            hint = f"Also missing a page range: {', '.join(missing)}\n\n{hint}"
        raise EmptyIdentifierError(
            "Empty ID or page range in: "
            + ", ".join(f"'{token}'" for token in malformed),
            tokens=tuple(malformed),
            hint=hint,
        )
    if missing:
        raise MissingSelectorError(
            _missing_selector_message(missing),
            tokens=tuple(missing),
        )
    return requests
