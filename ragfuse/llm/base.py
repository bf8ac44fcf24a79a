# ragfuse/llm/base.py
"""
Shared plumbing for HTTP provider clients.

Subclasses set `provider`, `timeout_type` and `error_cls`, then call
`_post(path, payload)`. Every failure leaves this module as `error_cls`
(an EmbeddingError, RerankError or ChatError) chained to the APIError
that describes the HTTP problem.
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional

import httpx

from ragfuse.core.exceptions import ProviderError
from ragfuse.core.http import APIError, create_async_api_client, handle_api_error, raise_for_status
from ragfuse.core.retry import CircuitBreaker, RetryPolicy, with_retry


class HTTPProviderClient:
    """Base class for async JSON-over-HTTP provider clients."""

    provider: ClassVar[str] = "unknown"
    timeout_type: ClassVar[str] = "default"
    error_cls: ClassVar[type[ProviderError]] = ProviderError

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.retry_policy = retry_policy
        self.circuit_breaker = circuit_breaker

        client_kwargs: dict[str, Any] = {}
        if transport is not None:
            client_kwargs["transport"] = transport

        self._client = create_async_api_client(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            timeout_type=self.timeout_type,
            **client_kwargs,
        )

    async def _send(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as exc:
            raise handle_api_error(exc, provider=self.provider, endpoint=path) from exc

        raise_for_status(response, provider=self.provider, endpoint=path)

        try:
            return response.json()
        except ValueError as exc:
            raise APIError(
                message=f"{self.provider} returned invalid JSON",
                status_code=response.status_code,
                provider=self.provider,
                endpoint=path,
                original_error=exc,
            ) from exc

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON payload, applying the retry policy and circuit breaker if set."""

        async def attempt() -> dict[str, Any]:
            if self.circuit_breaker is not None:
                return await self.circuit_breaker.call(lambda: self._send(path, payload))
            return await self._send(path, payload)

        try:
            if self.retry_policy is not None:
                return await with_retry(attempt, self.retry_policy)
            return await attempt()
        except self.error_cls:
            raise
        except Exception as exc:
            raise self.error_cls(str(exc)) from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["HTTPProviderClient"]
