# ragfuse/cli/commands/chunk.py
"""
Chunk command: Preview how a document will be chunked.

Usage:
    ragfuse chunk ./doc.txt                          # Configured strategy
    ragfuse chunk ./doc.txt --strategy fixed --size 500
    ragfuse chunk ./doc.txt --stats                  # Just show stats

semantic and hybrid strategies call the embedding provider.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from ragfuse.cli.ui import console, preview, ui
from ragfuse.cli.utils import build_embedder, load_cli_config, read_text
from ragfuse.config.schema import ChunkingConfig
from ragfuse.core.exceptions import ConfigValidationError, RagfuseError
from ragfuse.ingestion.chunking.engine import ChunkingEngine
from ragfuse.ingestion.chunking.plugins.fixed_window import estimate_token_count
from ragfuse.logging.logger import get_logger

logger = get_logger(__name__)

STRATEGIES = ("fixed", "semantic", "hybrid")


def _chunking_config(
    base: ChunkingConfig,
    strategy: Optional[str],
    size: Optional[int],
    overlap: Optional[int],
) -> ChunkingConfig:
    strategy = strategy or base.strategy
    if strategy not in STRATEGIES:
        raise ConfigValidationError(f"Unknown strategy '{strategy}'. Choose one of: {', '.join(STRATEGIES)}")

    if strategy == "fixed":
        fixed = base.fixed.resolve({"chunk_size": size, "chunk_overlap": overlap})
        return base.model_copy(update={"strategy": strategy, "fixed": fixed})

    semantic = base.semantic.resolve({"max_chunk_size": size})
    return base.model_copy(update={"strategy": strategy, "semantic": semantic})


def command(
    source: Path,
    strategy: Optional[str] = None,
    size: Optional[int] = None,
    overlap: Optional[int] = None,
    stats_only: bool = False,
    limit: int = 5,
    config_path: Optional[Path] = None,
) -> None:
    """Preview chunking for one file."""
    config = load_cli_config(config_path)
    text = read_text(source)

    try:
        chunking = _chunking_config(config.chunking, strategy, size, overlap)
    except ConfigValidationError as e:
        ui.fail(str(e))

    embedder = build_embedder(config) if chunking.strategy != "fixed" else None
    engine = ChunkingEngine.from_config(chunking, embedder=embedder)

    async def run():
        try:
            return await engine.run(text, doc_id=source.stem, metadata={"source_file": str(source)})
        finally:
            if embedder is not None:
                await embedder.aclose()

    try:
        chunks = asyncio.run(run())
    except RagfuseError as e:
        ui.fail(f"Chunking failed: {e}")

    sizes = [len(c.content) for c in chunks]
    ui.header("Chunking Preview", f"Chunker: {engine.chunker_id}")

    rows: list[tuple[str, str]] = [
        ("File", str(source)),
        ("Characters", f"{len(text):,}"),
        ("Estimated tokens", f"{estimate_token_count(text):,}"),
        ("Chunks", str(len(chunks))),
    ]
    if sizes:
        rows += [
            ("Avg chunk size", f"{sum(sizes) // len(sizes):,} chars"),
            ("Min chunk size", f"{min(sizes):,} chars"),
            ("Max chunk size", f"{max(sizes):,} chars"),
        ]
    ui.summary("Summary", rows)

    if stats_only or not chunks:
        return

    shown = min(limit, len(chunks))
    console.print()
    console.print(f"[bold]Chunk Previews[/bold] (showing {shown} of {len(chunks)}):")

    for chunk in chunks[:shown]:
        details: Dict[str, Any] = {"chars": f"{len(chunk.content):,}"}
        if chunk.span is not None:
            details["span"] = f"{chunk.start_char}-{chunk.end_char}"
        if chunk.sentence_count is not None:
            details["sentences"] = chunk.sentence_count
        if chunk.similarity is not None:
            details["similarity"] = f"{chunk.similarity:.3f}"

        meta = ", ".join(f"{k}={v}" for k, v in details.items())
        console.print()
        console.print(f"[dim]#{chunk.chunk_index}[/dim] [cyan]{chunk.id}[/cyan] [dim]({meta})[/dim]")
        console.print(f"  [dim]{preview(chunk.content)}[/dim]")

    if len(chunks) > shown:
        console.print()
        ui.info(f"Use --limit N to see more of the {len(chunks)} chunks")
