# ragfuse/cli/commands/ingest.py
"""
Ingest command: chunk a text file, embed the chunks, store them in Postgres.

Usage:
    ragfuse ingest ./handbook.txt --document-id handbook --dsn postgresql://...
    ragfuse ingest ./handbook.txt -d handbook --replace

Chunks are stored first and embedded afterwards; a chunk whose embedding
fails stays pending (invisible to search) until the next ingest.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from ragfuse.backends.pgvector import PgVectorIndex
from ragfuse.cli.ui import ui
from ragfuse.cli.utils import build_embedder, load_cli_config, read_text, resolve_dsn
from ragfuse.config.schema import RagfuseConfig
from ragfuse.core.exceptions import RagfuseError
from ragfuse.ingestion.chunking.engine import ChunkingEngine
from ragfuse.llm.embedding import OpenAIEmbeddingClient, embed_in_batches
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import CLI
from ragfuse.storage.postgres import PostgresConnectionManager

logger = get_logger(__name__)


async def ingest_document(
    text: str,
    document_id: str,
    config: RagfuseConfig,
    index: PgVectorIndex,
    embedder: OpenAIEmbeddingClient,
    title: Optional[str] = None,
    replace: bool = False,
) -> tuple[int, int]:
    """
    Chunk, store and embed one document.

    The new chunks replace whatever was stored for the document before;
    `replace` additionally drops the document row (title, metadata).

    Returns:
        (chunks stored, embeddings stored)
    """
    engine = ChunkingEngine.from_config(config.chunking, embedder=embedder)
    chunks = await engine.run(text, doc_id=document_id, metadata={"title": title} if title else None)

    await index.ensure_schema()
    if replace or not chunks:
        await index.delete_document(document_id)

    await index.upsert_chunks(chunks, titles={document_id: title} if title else None)

    pending = await index.pending_chunks(document_id)
    if not pending:
        return len(chunks), 0

    vectors = await embed_in_batches(
        embedder,
        [content for _, content in pending],
        batch_size=config.embedding.batch_size,
        delay=config.embedding.batch_delay,
    )
    stored = await index.set_embeddings({chunk_id: vec for (chunk_id, _), vec in zip(pending, vectors)})

    logger.info(f"{CLI} Ingested '{document_id}': {len(chunks)} chunks, {stored} embeddings")
    return len(chunks), stored


def command(
    source: Path,
    document_id: str,
    title: Optional[str] = None,
    dsn: Optional[str] = None,
    replace: bool = False,
    config_path: Optional[Path] = None,
) -> None:
    """Ingest one file."""
    config = load_cli_config(config_path)
    text = read_text(source)
    storage = config.storage.model_copy(update={"connection_string": resolve_dsn(dsn, config)})
    embedder = build_embedder(config)

    async def run() -> tuple[int, int]:
        try:
            async with PostgresConnectionManager(storage) as manager:
                index = PgVectorIndex(manager)
                return await ingest_document(text, document_id, config, index, embedder, title, replace)
        finally:
            await embedder.aclose()

    ui.header("Ingest", f"{source} → {document_id}")

    try:
        n_chunks, n_embedded = asyncio.run(run())
    except RagfuseError as e:
        ui.fail(f"Ingest failed: {e}")

    ui.success(f"Stored {n_chunks} chunks, embedded {n_embedded}")
