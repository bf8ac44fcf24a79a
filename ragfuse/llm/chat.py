# ragfuse/llm/chat.py
"""OpenAI chat completions client (used for HyDE query expansion)."""

from __future__ import annotations

from typing import Any, ClassVar, Dict, List, Optional

import httpx

from ragfuse.config.schema import ChatConfig
from ragfuse.core.exceptions import ChatError
from ragfuse.core.retry import CircuitBreaker, RetryPolicy
from ragfuse.llm.base import HTTPProviderClient
from ragfuse.llm.credentials import resolve_api_key
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import CHAT

logger = get_logger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
COMPLETIONS_PATH = "/chat/completions"


class OpenAIChatClient(HTTPProviderClient):
    """Async client for /chat/completions. chat() returns the first choice's text."""

    provider: ClassVar[str] = "openai"
    timeout_type: ClassVar[str] = "chat"
    error_cls = ChatError

    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            retry_policy=retry_policy,
            circuit_breaker=circuit_breaker,
            transport=transport,
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_config(
        cls,
        config: ChatConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "OpenAIChatClient":
        api_key = resolve_api_key(provider="openai", config={"api_key": config.api_key})
        retry_policy = RetryPolicy(max_retries=config.max_retries) if config.max_retries else None
        return cls(
            api_key=api_key,
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            retry_policy=retry_policy,
            transport=transport,
        )

    async def chat(self, messages: List[Dict[str, Any]]) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens

        response = await self._post(COMPLETIONS_PATH, payload)

        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ChatError(f"Failed to extract chat response: {exc}") from exc

        logger.debug(f"{CHAT} Completion from {self.model} ({len(content or '')} chars)")
        return content or ""


__all__ = ["OpenAIChatClient"]
