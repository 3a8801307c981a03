"""Tests for extracted PDF text cleanup."""

from __future__ import annotations

from reader_export.normalize import PAGE_BREAK_MARKER, clean_extracted_text, has_extractable_text


def test_reflow_joins_hard_wrapped_lines() -> None:
    raw = "the market clears when\nquantity supplied equals\nquantity demanded.\n\nNext paragraph here."
    cleaned = clean_extracted_text(raw)
    assert cleaned == (
        "the market clears when quantity supplied equals quantity demanded.\n\nNext paragraph here."
    )


def test_capitalised_line_starts_new_sentence() -> None:
    cleaned = clean_extracted_text("Chapter one\nIntroduction to prices")
    assert cleaned == "Chapter one Introduction to prices"


def test_form_feed_becomes_page_break_marker() -> None:
    cleaned = clean_extracted_text("Page one text.\fPage two text.")
    assert cleaned == f"Page one text.\n\n{PAGE_BREAK_MARKER}\n\nPage two text."


def test_control_characters_and_spaces_are_removed() -> None:
    cleaned = clean_extracted_text("Price\x07  elasticity\u200b   matters.\r\n")
    assert cleaned == "Price elasticity matters."


def test_empty_text_is_none() -> None:
    assert clean_extracted_text("") is None
    assert clean_extracted_text(None) is None


def test_has_extractable_text() -> None:
    assert has_extractable_text("Supply and demand determine prices.")
    assert not has_extractable_text("   \n  ")
    assert not has_extractable_text("~~~ ### ~~~")
    assert not has_extractable_text("aaaa aaaa aaaa aaaa")
    assert not has_extractable_text(None)
