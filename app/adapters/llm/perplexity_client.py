"""Perplexity chat completions client adapter.

Perplexity exposes an OpenAI-compatible ``/chat/completions`` endpoint, so the
official OpenAI SDK is used with a custom base URL. Perplexity-only request
fields (citations, search recency) are sent through ``extra_body``.
"""

import logging
from typing import Any

from openai import APIStatusError, AsyncOpenAI

from app.adapters.llm.base import AbstractChatClient
from app.core.errors import ErrorDetails, UpstreamAppError
from app.schemas.chat import ChatMessage

logger = logging.getLogger(__name__)


def _error_reason(body: Any) -> str | None:
    """Extract the provider's own error description from an error body.

    Handles both ``{"error": {"message": ...}}`` and the already-unwrapped
    ``{"message": ...}`` shape, as well as plain string bodies.
    """
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict):
            inner = inner.get("message")
        body = inner
    if isinstance(body, str):
        return body or None
    return None


class PerplexityClient(AbstractChatClient):
    """Client for calling Perplexity chat completions and returning text.

    Uses the OpenAI Python SDK with async support. Retries are disabled:
    every failure is terminal for the request that triggered it.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "sonar",
        base_url: str = "https://api.perplexity.ai",
        timeout_seconds: float = 30.0,
        max_tokens: int = 1200,
        temperature: float = 0.0,
        top_p: float = 0.8,
        return_citations: bool = True,
        search_recency_filter: str | None = "month",
    ) -> None:
        """Initialize Perplexity async client.

        Args:
            api_key: Perplexity API key, sent as a bearer token.
            model: Model name (e.g., "sonar").
            base_url: API base URL; the SDK appends ``/chat/completions``.
            timeout_seconds: Timeout for requests in seconds.
            max_tokens: Default completion token budget.
            temperature: Default sampling temperature.
            top_p: Default nucleus sampling parameter.
            return_citations: Ask the API to include citations.
            search_recency_filter: Optional recency window for web search.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p
        self.return_citations = return_citations
        self.search_recency_filter = search_recency_filter

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self.client.close()

    def _build_request(self, messages: list[ChatMessage], **kwargs: Any) -> dict[str, Any]:
        """Assemble keyword arguments for ``chat.completions.create``.

        ``sampling=False`` sends only model, messages and max_tokens, which is
        what the diagnostics probe uses.
        """
        request_params: dict[str, Any] = {
            "model": kwargs.get("model", self.model),
            "messages": [message.model_dump() for message in messages],
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
        }

        if kwargs.get("sampling", True):
            request_params["temperature"] = kwargs.get("temperature", self.temperature)
            request_params["top_p"] = kwargs.get("top_p", self.top_p)

            extra_body: dict[str, Any] = {}
            if self.return_citations:
                extra_body["return_citations"] = True
            if self.search_recency_filter:
                extra_body["search_recency_filter"] = self.search_recency_filter
            if extra_body:
                request_params["extra_body"] = extra_body

        if "timeout" in kwargs:
            request_params["timeout"] = kwargs["timeout"]

        return request_params

    async def complete(
        self,
        messages: list[ChatMessage],
        **kwargs: Any,
    ) -> str | None:
        """Generate an answer using Perplexity chat completions.

        Args:
            messages: Conversation to send.
            **kwargs: Overrides (model, max_tokens, temperature, top_p,
                timeout, sampling).

        Returns:
            str | None: First choice's content, or None if absent.

        Raises:
            UpstreamAppError: With ``details["http_status"]`` when the API
                answered with an error status, code ``upstream_unavailable``
                for timeouts/connection failures.
        """
        request_params = self._build_request(messages, **kwargs)

        try:
            response = await self.client.chat.completions.create(**request_params)
        except APIStatusError as exc:
            logger.error(
                "upstream.http_error",
                extra={
                    "http_status": exc.status_code,
                    "upstream_body": exc.body,
                    "model": request_params["model"],
                },
            )
            details: ErrorDetails = {
                "http_status": exc.status_code,
                "model": request_params["model"],
            }
            reason = _error_reason(exc.body)
            if reason:
                details["upstream_error"] = reason
            raise UpstreamAppError(
                code="upstream_http_error",
                message=f"Upstream API returned HTTP {exc.status_code}",
                details=details,
            ) from exc
        except Exception as exc:
            logger.error(
                "upstream.request_failed",
                extra={
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "model": request_params["model"],
                },
            )
            raise UpstreamAppError(
                code="upstream_unavailable",
                message=f"Upstream API request failed: {type(exc).__name__}",
                details={"model": request_params["model"]},
            ) from exc

        if not response.choices:
            return None
        return response.choices[0].message.content
