# ragfuse/cli/utils.py
"""Helpers shared by CLI commands."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from ragfuse.cli.ui import ui
from ragfuse.config.loader import load_config
from ragfuse.config.schema import RagfuseConfig
from ragfuse.core.exceptions import ConfigValidationError
from ragfuse.llm.credentials import CredentialError
from ragfuse.llm.embedding import OpenAIEmbeddingClient
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import CLI

logger = get_logger(__name__)

DATABASE_URL_ENV = "RAGFUSE_DATABASE_URL"


def load_cli_config(path: Optional[Path]) -> RagfuseConfig:
    """Load config or exit with a readable error."""
    try:
        return load_config(path)
    except (ConfigValidationError, FileNotFoundError) as e:
        ui.fail(f"Configuration error: {e}")


def resolve_dsn(dsn: Optional[str], config: RagfuseConfig) -> str:
    """--dsn, then storage.connection_string, then $RAGFUSE_DATABASE_URL."""
    resolved = dsn or config.storage.connection_string or os.getenv(DATABASE_URL_ENV)
    if not resolved:
        ui.fail(f"No database configured. Pass --dsn, set storage.connection_string, or set {DATABASE_URL_ENV}.")
    logger.debug(f"{CLI} Using database from {'--dsn' if dsn else 'config/env'}")
    return resolved


def read_text(path: Path) -> str:
    if not path.is_file():
        ui.fail(f"{path} does not exist or is not a file")
    return path.read_text(encoding="utf-8", errors="ignore")


def build_embedder(config: RagfuseConfig) -> OpenAIEmbeddingClient:
    try:
        return OpenAIEmbeddingClient.from_config(config.embedding)
    except CredentialError as e:
        ui.fail(str(e))
