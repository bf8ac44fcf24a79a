# ragfuse/core/http.py
"""
HTTP plumbing shared by the provider clients.

The embedding, rerank and chat clients all speak JSON over HTTPS with a
bearer token. This module builds their httpx clients and turns transport
and status failures into APIError subclasses, which the retry layer
classifies as retryable or not.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ragfuse.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass
class APIError(Exception):
    """A provider call failed. `status_code` is None when no response arrived."""

    message: str
    status_code: Optional[int] = None
    provider: Optional[str] = None
    endpoint: Optional[str] = None
    details: Optional[str] = None
    original_error: Optional[Exception] = None

    def __str__(self) -> str:
        text = self.message
        if self.status_code:
            text += f" (HTTP {self.status_code})"
        if self.details:
            text += f": {self.details}"
        return text


class RateLimitError(APIError):
    """HTTP 429."""


class AuthenticationError(APIError):
    """HTTP 401 or 403."""


class ModelNotFoundError(APIError):
    """HTTP 404, usually a mistyped model name."""


class APITimeoutError(APIError):
    """No response within the client timeout."""


class APIConnectionError(APIError):
    """The provider could not be reached."""


# Seconds. Chat completions are slow; embeddings and rerank are not.
DEFAULT_TIMEOUTS = {
    "default": 30.0,
    "embedding": 30.0,
    "rerank": 30.0,
    "chat": 120.0,
}

_STATUS_ERRORS: Dict[int, tuple[type[APIError], str]] = {
    401: (AuthenticationError, "rejected the API key"),
    403: (AuthenticationError, "rejected the API key"),
    404: (ModelNotFoundError, "does not know this model or endpoint"),
    429: (RateLimitError, "rate limit exceeded"),
}


def create_async_api_client(
    base_url: str,
    api_key: Optional[str] = None,
    timeout: Optional[float] = None,
    timeout_type: str = "default",
    **kwargs: Any,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient for one provider.

    `timeout` wins over the `timeout_type` preset. Extra keyword arguments
    go to httpx unchanged (tests pass ``transport=httpx.MockTransport(...)``).
    """
    if timeout is None:
        timeout = DEFAULT_TIMEOUTS.get(timeout_type, DEFAULT_TIMEOUTS["default"])

    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    logger.debug(f"HTTP client for {base_url} (timeout={timeout}s)")
    return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, **kwargs)


def _error_detail(response: httpx.Response) -> Optional[str]:
    """Pull a message out of a provider's error body, whatever its shape."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or None

    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return body.get("message") or error


def handle_api_error(exc: Exception, provider: str = "unknown", endpoint: str = "") -> APIError:
    """Map an httpx exception to the matching APIError subclass."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        error_cls, reason = _STATUS_ERRORS.get(status, (APIError, "request failed"))
        return error_cls(
            message=f"{provider} {reason}",
            status_code=status,
            provider=provider,
            endpoint=endpoint,
            details=_error_detail(exc.response),
            original_error=exc,
        )

    if isinstance(exc, httpx.TimeoutException):
        error_cls, message = APITimeoutError, f"{provider} request timed out"
    elif isinstance(exc, httpx.TransportError):
        error_cls, message = APIConnectionError, f"could not reach {provider}"
    else:
        error_cls, message = APIError, f"{provider} request failed"

    return error_cls(message=message, provider=provider, endpoint=endpoint, details=str(exc) or None, original_error=exc)


def raise_for_status(response: httpx.Response, provider: str = "unknown", endpoint: str = "") -> None:
    """Raise the matching APIError for a 4xx/5xx response."""
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise handle_api_error(exc, provider=provider, endpoint=endpoint) from exc


__all__ = [
    "APIError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "APITimeoutError",
    "APIConnectionError",
    "DEFAULT_TIMEOUTS",
    "create_async_api_client",
    "handle_api_error",
    "raise_for_status",
]
