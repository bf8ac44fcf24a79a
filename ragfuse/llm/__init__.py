# ragfuse/llm/__init__.py
"""Provider clients: embeddings, rerank, chat, and credential resolution."""

from ragfuse.llm.chat import OpenAIChatClient
from ragfuse.llm.credentials import CredentialError, resolve_api_key
from ragfuse.llm.embedding import OpenAIEmbeddingClient, embed_in_batches
from ragfuse.llm.rerank import CohereRerankClient

__all__ = [
    "CredentialError",
    "resolve_api_key",
    "OpenAIEmbeddingClient",
    "embed_in_batches",
    "CohereRerankClient",
    "OpenAIChatClient",
]
