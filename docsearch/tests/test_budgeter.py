"""
Tests for ContextBudgeter

Line accumulation, whole-text truncation and table formatting under a
token budget (WordTokenizer: one token per word).
"""

import pytest


def _line(words: int, tag: str) -> str:
    return " ".join([tag] * words)


class TestAccumulateLines:
    def test_keeps_lines_until_budget_exceeded(self, budgeter):
        lines = [_line(10, "a"), _line(10, "b"), _line(10, "c")]

        kept = budgeter.accumulate_lines(lines, max_tokens=25)

        assert kept == lines[:2]

    def test_stops_at_first_overflowing_line(self, budgeter):
        # The short third line would fit but comes after the overflow
        lines = [_line(5, "a"), _line(30, "b"), _line(1, "c")]

        assert budgeter.accumulate_lines(lines, max_tokens=10) == [lines[0]]

    def test_exact_budget_is_kept(self, budgeter):
        lines = [_line(4, "a"), _line(6, "b")]

        assert budgeter.accumulate_lines(lines, max_tokens=10) == lines

    def test_zero_budget(self, budgeter):
        assert budgeter.accumulate_lines(["a"], max_tokens=0) == []

    def test_default_budget(self, tokenizer):
        from docsearch.retriever.budgeter import ContextBudgeter

        budgeter = ContextBudgeter(tokenizer, max_tokens=3)

        assert budgeter.accumulate_lines(["a b", "c", "d"]) == ["a b", "c"]


class TestTruncate:
    def test_prefix_within_budget(self, budgeter):
        assert budgeter.truncate("one two three four", max_tokens=2) == "one two"

    def test_short_text_unchanged(self, budgeter):
        assert budgeter.truncate("one two", max_tokens=10) == "one two"

    def test_empty_and_zero_budget(self, budgeter):
        assert budgeter.truncate("", max_tokens=10) == ""
        assert budgeter.truncate("one two", max_tokens=0) == ""
        assert budgeter.truncate("one two", max_tokens=-1) == ""


class TestFormatTable:
    def test_format_cell(self):
        from docsearch.retriever.budgeter import format_cell

        assert format_cell("Ann") == '"Ann"'
        assert format_cell('Say "hi"') == '"Say \\"hi\\""'
        assert format_cell(30) == "30"
        assert format_cell(None) == ""

    def test_header_and_rows(self, budgeter):
        text = budgeter.format_table(["name", "age"], [("Ann", 30), ("Bob", None)], max_tokens=100)

        assert text == 'name|age\n"Ann"|30\n"Bob"|\n'

    def test_rows_cut_by_budget(self, budgeter):
        rows = [("a b c",), ("d e f",), ("g h i",)]

        text = budgeter.format_table(["letters"], rows, max_tokens=7)

        # header (1) + two rows (3 each)
        assert text == 'letters\n"a b c"\n"d e f"\n'

    def test_header_over_budget_is_empty(self, budgeter):
        assert budgeter.format_table(["x"], [(1,)], max_tokens=0) == ""

    def test_never_exceeds_budget(self, budgeter, tokenizer):
        rows = [(f"row {i}", i) for i in range(50)]

        text = budgeter.format_table(["label", "n"], rows, max_tokens=33)

        assert tokenizer.count_tokens(text) <= 33
