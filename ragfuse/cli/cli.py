# ragfuse/cli/cli.py
"""
ragfuse CLI - Main application.

Commands:
    ragfuse chunk     Preview how a document will be chunked
    ragfuse ingest    Chunk, embed and store a document in Postgres
    ragfuse search    Hybrid search over stored chunks

NOTE: Commands use lazy loading - heavy imports only happen when a command is invoked.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

app = typer.Typer(
    name="ragfuse",
    help="ragfuse - hybrid retrieval for RAG: chunking, vector + keyword search, RRF, reranking.",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    from ragfuse.logging.logger import configure_logging

    configure_logging(level=logging.DEBUG if verbose else logging.WARNING)


# =============================================================================
# LAZY COMMANDS
# =============================================================================


@app.command("chunk")
def chunk(
    source: Path = typer.Argument(..., help="Text file to chunk."),
    strategy: Optional[str] = typer.Option(None, "--strategy", "-s", help="fixed, semantic or hybrid."),
    size: Optional[int] = typer.Option(None, "--size", help="Chunk size in characters (max size for semantic)."),
    overlap: Optional[int] = typer.Option(None, "--overlap", "-o", help="Overlap in characters (fixed only)."),
    stats_only: bool = typer.Option(False, "--stats", help="Only show statistics, no chunk content."),
    limit: int = typer.Option(5, "--limit", "-n", help="Number of chunks to preview."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file."),
) -> None:
    """Preview how a document will be chunked."""
    from ragfuse.cli.commands import chunk as mod

    mod.command(
        source=source,
        strategy=strategy,
        size=size,
        overlap=overlap,
        stats_only=stats_only,
        limit=limit,
        config_path=config,
    )


@app.command("ingest")
def ingest(
    source: Path = typer.Argument(..., help="Text file to ingest."),
    document_id: str = typer.Option(..., "--document-id", "-d", help="Document id to store chunks under."),
    title: Optional[str] = typer.Option(None, "--title", help="Document title."),
    dsn: Optional[str] = typer.Option(None, "--dsn", help="Postgres connection string."),
    replace: bool = typer.Option(False, "--replace", help="Delete the document's existing chunks first."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file."),
) -> None:
    """Chunk, embed and store a document."""
    from ragfuse.cli.commands import ingest as mod

    mod.command(
        source=source,
        document_id=document_id,
        title=title,
        dsn=dsn,
        replace=replace,
        config_path=config,
    )


@app.command("search")
def search(
    query: str = typer.Argument(..., help="Search query."),
    dsn: Optional[str] = typer.Option(None, "--dsn", help="Postgres connection string."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum results."),
    min_similarity: Optional[float] = typer.Option(None, "--min-similarity", help="Vector similarity floor."),
    documents: Optional[List[str]] = typer.Option(None, "--document", "-d", help="Restrict to document id (repeatable)."),
    rerank: bool = typer.Option(False, "--rerank", help="Rerank results with Cohere."),
    hyde: bool = typer.Option(False, "--hyde", help="Embed a hypothetical answer instead of the query."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file."),
) -> None:
    """Hybrid search over stored chunks."""
    from ragfuse.cli.commands import search as mod

    mod.command(
        query=query,
        dsn=dsn,
        limit=limit,
        min_similarity=min_similarity,
        documents=documents or [],
        rerank=rerank,
        hyde=hyde,
        config_path=config,
    )


if __name__ == "__main__":
    app()
