# ragfuse/llm/credentials.py
"""
API key lookup for provider clients.

A key is taken from the first of these that is set:
  1. the `api_key` entry of the provider's config block
  2. the provider's own environment variables, in order
  3. RAGFUSE_API_KEY

Clients receive the resolved key; they never read the environment.
"""

from __future__ import annotations

import os
from typing import Iterator, Mapping, Optional

from ragfuse.core.exceptions import RagfuseError
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import CONFIG

logger = get_logger(__name__)

GENERIC_API_KEY_ENV = "RAGFUSE_API_KEY"

PROVIDER_ENV_MAP: dict[str, list[str]] = {
    "openai": ["OPENAI_API_KEY"],
    "cohere": ["COHERE_API_KEY", "CO_API_KEY"],
}


class CredentialError(RagfuseError):
    """No API key could be found for a provider."""


def _env_names(provider: str) -> list[str]:
    return PROVIDER_ENV_MAP.get(provider, []) + [GENERIC_API_KEY_ENV]


def _candidates(provider: str, config: Mapping[str, Optional[str]]) -> Iterator[tuple[str, Optional[str]]]:
    yield "config", config.get("api_key")
    for name in _env_names(provider):
        yield f"env {name}", os.getenv(name)


def resolve_api_key(*, provider: str, config: Optional[Mapping[str, Optional[str]]] = None) -> str:
    """
    Return the API key for `provider` ("openai", "cohere").

    Raises:
        CredentialError: If neither config nor environment holds a key.
    """
    for source, value in _candidates(provider, config or {}):
        if value:
            logger.debug(f"{CONFIG} {provider} API key from {source}")
            return value

    raise CredentialError(
        f"API key for provider '{provider}' not found. "
        f"Set one of: {', '.join(_env_names(provider))}, or provide 'api_key' in config."
    )


__all__ = ["CredentialError", "GENERIC_API_KEY_ENV", "PROVIDER_ENV_MAP", "resolve_api_key"]
