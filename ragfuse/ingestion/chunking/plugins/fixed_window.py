# ragfuse/ingestion/chunking/plugins/fixed_window.py
"""
Fixed-window character chunker with separator snapping.

Windows are chunk_size characters long. A window that stops short of the
end of the text is pulled back to just after the last occurrence of the
highest-priority separator found in its second half, so cuts land on
paragraph, line, sentence or word boundaries when possible. The next
window starts chunk_overlap characters before the (snapped) end.

Chunker ID format: "fixed:{chunk_size}:{chunk_overlap}"
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ragfuse.config.schema import ChunkConfig
from ragfuse.core.chunk import Chunk, make_chunk_id
from ragfuse.ingestion.chunking.base import doc_id_from

CHARS_PER_TOKEN = 4
SEPARATOR_MIN_POSITION_RATIO = 0.5


def estimate_token_count(text: str) -> int:
    """Rough token count (~4 characters per token, rounded up)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _snap_end(window: str, window_start: int, config: ChunkConfig) -> Optional[int]:
    min_position = config.chunk_size * SEPARATOR_MIN_POSITION_RATIO

    for separator in config.separators:
        if separator == "":
            continue
        pos = window.rfind(separator)
        if pos >= min_position:
            return window_start + pos + len(separator)

    return None


def iter_windows(text: str, config: ChunkConfig) -> Iterable[Tuple[int, int]]:
    """
    Yield (start, end) offsets of successive windows.

    Starts are strictly increasing, and the last window ends at len(text).
    """
    length = len(text)
    start = 0

    while start < length:
        end = min(start + config.chunk_size, length)

        if end < length:
            snapped = _snap_end(text[start:end], start, config)
            if snapped is not None:
                end = snapped

        yield start, end

        if end >= length:
            break

        next_start = end - config.chunk_overlap
        if next_start <= start:
            next_start = end
        start = next_start


@dataclass
class FixedWindowChunker:
    """
    Overlapping fixed-size windows, snapped to separators.

    Example:
        >>> chunker = FixedWindowChunker(ChunkConfig.build({"chunk_size": 500, "chunk_overlap": 50}))
        >>> chunker.chunker_id
        'fixed:500:50'
    """

    config: ChunkConfig = field(default_factory=ChunkConfig)
    plugin_name: str = field(default="fixed", repr=False)

    @property
    def chunker_id(self) -> str:
        return f"{self.plugin_name}:{self.config.chunk_size}:{self.config.chunk_overlap}"

    def chunk_text(
        self,
        text: str,
        base_meta: Dict[str, Any],
        start_index: int = 0,
        page_number: Optional[int] = None,
    ) -> List[Chunk]:
        """
        Split text into windows.

        Args:
            text: Raw text
            base_meta: Metadata copied into every chunk ("doc_id" names the document)
            start_index: chunk_index of the first chunk produced
            page_number: Recorded on every chunk when chunking one page

        Returns:
            Chunks in text order. Empty for empty or whitespace-only text.
        """
        if not text or not text.strip():
            return []

        doc_id = doc_id_from(base_meta)
        chunks: List[Chunk] = []
        chunk_index = start_index

        for start, end in iter_windows(text, self.config):
            content = text[start:end].strip()
            if not content:
                continue

            meta = dict(base_meta)
            if page_number is not None:
                meta["page_number"] = page_number

            chunks.append(
                Chunk(
                    id=make_chunk_id(doc_id, chunk_index),
                    doc_id=doc_id,
                    content=content,
                    chunk_index=chunk_index,
                    start_char=start,
                    end_char=end,
                    page_number=page_number,
                    metadata=meta,
                )
            )
            chunk_index += 1

        return chunks

    def chunk_pages(
        self,
        pages: Iterable[Tuple[int, str]],
        base_meta: Dict[str, Any],
        start_index: int = 0,
    ) -> List[Chunk]:
        """
        Chunk (page_number, text) pages one at a time.

        No chunk crosses a page boundary. Offsets are relative to the page;
        chunk indices run on across pages.
        """
        chunks: List[Chunk] = []
        next_index = start_index

        for page_number, page_text in pages:
            page_chunks = self.chunk_text(page_text, base_meta, start_index=next_index, page_number=page_number)
            chunks.extend(page_chunks)
            next_index += len(page_chunks)

        return chunks


__all__ = ["FixedWindowChunker", "estimate_token_count", "iter_windows"]
