"""Tests for the ID-list and page-range selector parser (core/range_selector.py).

Pure function tests — no I/O, no mocking.

Coverage:
* Order preservation and ``all`` normalisation.
* Whitespace and empty-token handling.
* Every token lacking a selector is reported together.
* Empty identifiers and empty selectors are rejected.
"""

from __future__ import annotations

import pytest

from candlekeep.core.models import RangeRequest
from candlekeep.core.range_selector import parse_ids, parse_range_selectors, split_tokens
from candlekeep.exceptions import (
    EmptyIdentifierError,
    EmptyInputError,
    MissingSelectorError,
)


# ---------------------------------------------------------------------------
# split_tokens / parse_ids
# ---------------------------------------------------------------------------

class TestParseIds:
    def test_splits_and_trims(self) -> None:
        assert parse_ids(" a , b,c ") == ["a", "b", "c"]

    def test_drops_empty_tokens(self) -> None:
        assert parse_ids("a,,b,") == ["a", "b"]

    @pytest.mark.parametrize("text", ["", "   ", ",", " , ,"])
    def test_empty_input_rejected(self, text: str) -> None:
        with pytest.raises(EmptyInputError, match="No item IDs provided"):
            parse_ids(text)

    def test_split_tokens_keeps_order(self) -> None:
        assert split_tokens("z,y,x") == ["z", "y", "x"]


# ---------------------------------------------------------------------------
# parse_range_selectors — happy paths
# ---------------------------------------------------------------------------

class TestParseRangeSelectors:
    def test_single_range(self) -> None:
        assert parse_range_selectors("abc:1-5") == [RangeRequest("abc", "1-5")]

    def test_preserves_input_order(self) -> None:
        result = parse_range_selectors("b:2,a:all,c:7-9")
        assert [r.item_id for r in result] == ["b", "a", "c"]

    @pytest.mark.parametrize("selector", ["all", "ALL", "All", "aLl"])
    def test_all_is_case_insensitive(self, selector: str) -> None:
        assert parse_range_selectors(f"x:{selector}") == [RangeRequest("x", None)]

    def test_whitespace_around_parts_is_trimmed(self) -> None:
        assert parse_range_selectors(" a : 1-3 , b :all ") == [
            RangeRequest("a", "1-3"),
            RangeRequest("b", None),
        ]

    def test_selector_passed_through_verbatim(self) -> None:
        # Range syntax is validated by the service, not here.
        assert parse_range_selectors("a:99-1") == [RangeRequest("a", "99-1")]

    def test_only_first_colon_splits(self) -> None:
        assert parse_range_selectors("a:1:2") == [RangeRequest("a", "1:2")]

    def test_duplicate_ids_are_kept(self) -> None:
        assert len(parse_range_selectors("a:1,a:2")) == 2

    def test_payload_omits_pages_for_all(self) -> None:
        first, second = parse_range_selectors("a:all,b:3")
        assert first.to_payload() == {"id": "a"}
        assert second.to_payload() == {"id": "b", "pages": "3"}


# ---------------------------------------------------------------------------
# parse_range_selectors — failures
# ---------------------------------------------------------------------------

class TestParseRangeSelectorErrors:
    @pytest.mark.parametrize("text", ["", " ", ",,"])
    def test_empty_input(self, text: str) -> None:
        with pytest.raises(EmptyInputError):
            parse_range_selectors(text)

    def test_missing_selector_names_every_offender(self) -> None:
        with pytest.raises(MissingSelectorError) as exc_info:
            parse_range_selectors("a,b:all,c")
        err = exc_info.value
        assert err.tokens == ("a", "c")
        message = str(err)
        assert "Missing page range for: a, c" in message
        assert "Example: a:all,c:all" in message
        assert "id:1-5" in message

    def test_missing_selector_produces_no_partial_result(self) -> None:
        with pytest.raises(MissingSelectorError):
            parse_range_selectors("ok:all,bad")

    @pytest.mark.parametrize("text", [":5", " :all", "a:1,:2"])
    def test_empty_identifier(self, text: str) -> None:
        with pytest.raises(EmptyIdentifierError, match="Empty ID or page range"):
            parse_range_selectors(text)

    def test_empty_selector(self) -> None:
        with pytest.raises(EmptyIdentifierError) as exc_info:
            parse_range_selectors("c:")
        assert exc_info.value.tokens == ("c:",)

    def test_malformed_token_reported_before_missing(self) -> None:
        with pytest.raises(EmptyIdentifierError) as exc_info:
            parse_range_selectors("a,:1")
        assert exc_info.value.tokens == (":1",)
        assert "Also missing a page range: a\n" in exc_info.value.hint

    def test_every_bare_id_listed_alongside_malformed(self) -> None:
        with pytest.raises(EmptyIdentifierError) as exc_info:
            parse_range_selectors("x,:5,y,ok:all")
        assert "Also missing a page range: x, y" in exc_info.value.hint

    def test_hint_omits_missing_line_when_none(self) -> None:
        with pytest.raises(EmptyIdentifierError) as exc_info:
            parse_range_selectors(":5")
        assert "Also missing" not in exc_info.value.hint
