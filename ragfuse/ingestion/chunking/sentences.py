# ragfuse/ingestion/chunking/sentences.py
"""
Sentence boundary detection.

Rule-based: a sentence ends at '.', '!' or '?' (plus any closing quotes
or brackets) followed by whitespace, and at blank lines. A period does
not end a sentence when it follows a known abbreviation or a single-letter
initial, or when the next word starts in lowercase.
"""

from __future__ import annotations

import re
from typing import List

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
BOUNDARY = re.compile(r"[.!?]+[\"'”’)\]]*\s+")
LAST_WORD = re.compile(r"(\S+)$")

ABBREVIATIONS = frozenset(
    {
        "mr", "mrs", "ms", "dr", "prof", "sr", "jr", "st", "vs", "etc",
        "e.g", "i.e", "cf", "al", "inc", "ltd", "co", "corp", "no", "fig",
        "approx", "dept", "est", "jan", "feb", "mar", "apr", "jun", "jul",
        "aug", "sep", "sept", "oct", "nov", "dec", "u.s", "u.k",
    }
)


def _is_false_boundary(text: str, start: int, match: re.Match) -> bool:
    punct = match.group(0).rstrip()
    if not punct.startswith("."):
        return False

    rest = text[match.end():]
    if rest[:1].islower():
        return True

    word = LAST_WORD.search(text[start:match.start()])
    if word is None:
        return False

    token = word.group(1).lstrip("(\"'").lower()
    if token in ABBREVIATIONS:
        return True

    # single-letter initials: "J. R. R. Tolkien"
    return len(token) == 1 and token.isalpha()


def _split_paragraph(paragraph: str) -> List[str]:
    sentences: List[str] = []
    start = 0

    for match in BOUNDARY.finditer(paragraph):
        if _is_false_boundary(paragraph, start, match):
            continue

        sentence = paragraph[start:match.end()].strip()
        if sentence:
            sentences.append(sentence)
        start = match.end()

    tail = paragraph[start:].strip()
    if tail:
        sentences.append(tail)

    return sentences


def split_sentences(text: str) -> List[str]:
    """
    Split text into sentences, in order, each stripped and non-empty.

    Examples:
        >>> split_sentences("Dr. Smith arrived. He sat down! Why?")
        ['Dr. Smith arrived.', 'He sat down!', 'Why?']
    """
    if not text or not text.strip():
        return []

    sentences: List[str] = []
    for paragraph in PARAGRAPH_BREAK.split(text):
        sentences.extend(_split_paragraph(paragraph))

    return sentences


__all__ = ["split_sentences"]
