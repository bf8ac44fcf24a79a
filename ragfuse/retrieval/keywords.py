# ragfuse/retrieval/keywords.py
"""Keyword extraction for the lexical search stage."""

from __future__ import annotations

import re

NON_WORD = re.compile(r"[^\w\s]", re.UNICODE)

MIN_KEYWORD_LENGTH = 3


def extract_keywords(query: str) -> list[str]:
    """
    Split a query into search keywords.

    Non-word characters are stripped, tokens of two characters or fewer are
    dropped, and duplicates are removed case-insensitively (first spelling
    and order kept).

    Examples:
        >>> extract_keywords("What's the API rate-limit?")
        ['Whats', 'the', 'API', 'ratelimit']
    """
    keywords: list[str] = []
    seen: set[str] = set()

    for token in NON_WORD.sub("", query).split():
        if len(token) < MIN_KEYWORD_LENGTH:
            continue

        folded = token.casefold()
        if folded in seen:
            continue

        seen.add(folded)
        keywords.append(token)

    return keywords


__all__ = ["extract_keywords"]
