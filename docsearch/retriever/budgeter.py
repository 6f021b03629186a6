"""
Context Budgeter

Keeps tool output within a token budget.

Two policies:
- line accumulation: keep whole lines until the next one would overflow
- whole-text truncation: keep the longest token-bounded prefix
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence

from ..common.services import Tokenizer

logger = logging.getLogger("docsearch.retriever.budgeter")


def format_cell(value: Any) -> str:
    """Strings are double-quoted with embedded quotes escaped."""
    if isinstance(value, str):
        return '"' + value.replace('"', '\\"') + '"'
    if value is None:
        return ""
    return str(value)


class ContextBudgeter:
    """Applies token budgets using an injected Tokenizer."""

    def __init__(self, tokenizer: Tokenizer, max_tokens: int = 4096):
        self._tokenizer = tokenizer
        self.max_tokens = max_tokens

    def accumulate_lines(self, lines: Iterable[str], max_tokens: Optional[int] = None) -> List[str]:
        """
        Keep a prefix of complete lines within the budget.

        Accumulation stops at the first line whose tokens would push the
        running total over the budget; that line and all later lines are
        dropped.
        """
        budget = self.max_tokens if max_tokens is None else max_tokens
        kept: List[str] = []
        total = 0

        for line in lines:
            total += self._tokenizer.count_tokens(line)
            if total > budget:
                break
            kept.append(line)

        return kept

    def truncate(self, text: str, max_tokens: Optional[int] = None) -> str:
        """Longest prefix of text whose token count fits the budget."""
        budget = self.max_tokens if max_tokens is None else max_tokens
        if budget <= 0 or not text:
            return ""
        return self._tokenizer.truncate_to_budget(text, budget)

    def format_table(
        self,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Render a header and rows separated by ``|`` within the budget.

        The header counts against the budget like any other line, so the
        output never exceeds it.
        """
        header = "|".join(str(c) for c in columns)
        lines = (
            "|".join(format_cell(value) for value in row)
            for row in rows
        )

        def _all_lines():
            yield header
            yield from lines

        kept = self.accumulate_lines(_all_lines(), max_tokens)
        if not kept:
            logger.warning("Table header alone exceeds the token budget")
            return ""
        return "".join(line + "\n" for line in kept)
