"""Chat service orchestrating relevance filtering, query enhancement and the
upstream call.

Runs after the request gate has admitted the request and the body has been
validated. Each step is terminal on failure:

1. Out-of-scope question → canned refusal flagged ``notRelated`` (no upstream call)
2. Missing upstream credential → ConfigurationAppError (HTTP 500)
3. Upstream call with the enhanced query
4. Empty completion → LLMAppError (HTTP 500)
5. Upstream failures translated to client-safe errors (HTTP 500 / 429)
"""

import logging
from typing import Callable

from app.adapters.llm.base import AbstractChatClient
from app.core.config import settings
from app.core.errors import (
    ConfigurationAppError,
    LLMAppError,
    UpstreamAppError,
    UpstreamRateLimitAppError,
)
from app.core.prompts import build_messages
from app.schemas.chat import ChatMessage, ChatResponse
from app.schemas.diagnostics import UpstreamDiagnosticsResponse, UpstreamProbeResult
from app.services.query_enhancer import enhance_query
from app.services.relevance_filter import is_locality_related

logger = logging.getLogger(__name__)

NOT_RELATED_RESPONSE = (
    "I'm sorry, I can only answer questions related to Northstowe. Please ask me "
    "about local services, facilities, developments, or community information in "
    "Northstowe."
)

PROBE_PROMPT = "Hello, this is a test message."

ChatClientFactory = Callable[[], AbstractChatClient]


def translate_upstream_error(exc: UpstreamAppError) -> LLMAppError:
    """Map an upstream failure to the error surfaced to the caller.

    Upstream status codes are kept in the logs only:
    - 401 → authentication failure (500)
    - 403 → permission failure (500)
    - 429 → upstream throttling (429)
    - anything else → generic failure (500)
    """
    status = (exc.details or {}).get("http_status")

    if status == 401:
        return LLMAppError(
            code="upstream_auth_failed",
            message="API authentication failed - check your Perplexity API key",
        )
    if status == 403:
        return LLMAppError(
            code="upstream_forbidden",
            message="API access forbidden - check your Perplexity API key permissions",
        )
    if status == 429:
        return UpstreamRateLimitAppError(
            code="upstream_rate_limited",
            message="API rate limit exceeded. Please try again later.",
        )
    return LLMAppError(
        code="upstream_failed",
        message="Failed to get response. Please try again.",
    )


class ChatService:
    """Answers locality questions using the upstream AI search API.

    Attributes:
        client_factory: Callable building the upstream client. Invoked lazily
            on first use so that configuration errors surface as responses;
            the built client is reused afterwards.
    """

    def __init__(
        self,
        client_factory: ChatClientFactory,
        *,
        follow_up_max_chars: int | None = None,
    ) -> None:
        self.client_factory = client_factory
        self.follow_up_max_chars = (
            follow_up_max_chars
            if follow_up_max_chars is not None
            else settings.app.follow_up_max_chars
        )
        self._client: AbstractChatClient | None = None

    def _get_client(self) -> AbstractChatClient:
        # A failing factory is retried on the next request.
        if self._client is None:
            self._client = self.client_factory()
        return self._client

    async def aclose(self) -> None:
        """Release the cached upstream client, if one was built."""
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    def is_related(self, message: str) -> bool:
        return is_locality_related(message, follow_up_max_chars=self.follow_up_max_chars)

    async def answer(self, message: str) -> ChatResponse:
        """Answer a user question.

        Args:
            message: Validated, non-empty user question.

        Returns:
            ChatResponse with the upstream text, or the refusal flagged
            ``not_related``.

        Raises:
            ConfigurationAppError: If the upstream credential is missing.
            LLMAppError: If the upstream call fails or returns no content.
            UpstreamRateLimitAppError: If the upstream API throttled us.
        """
        if not self.is_related(message):
            logger.info("chat.not_related", extra={"message_length": len(message)})
            return ChatResponse(response=NOT_RELATED_RESPONSE, not_related=True)

        client = self._get_client()

        enhanced = enhance_query(message)
        messages = build_messages(enhanced)

        try:
            content = await client.complete(messages)
        except UpstreamAppError as exc:
            translated = translate_upstream_error(exc)
            logger.error(
                "chat.upstream_error",
                extra={
                    "upstream_code": exc.code,
                    "http_status": (exc.details or {}).get("http_status"),
                    "error_code": translated.code,
                },
            )
            raise translated from exc

        if not content:
            logger.error("chat.empty_completion")
            raise LLMAppError(
                code="empty_completion",
                message="No response from AI service",
            )

        logger.info(
            "chat.answered",
            extra={
                "message_length": len(message),
                "enhanced_length": len(enhanced),
                "response_length": len(content),
            },
        )
        return ChatResponse(response=content)

    async def probe_models(
        self,
        models: list[str],
        *,
        timeout_seconds: float | None = None,
        max_tokens: int | None = None,
    ) -> UpstreamDiagnosticsResponse:
        """Try candidate models in order and stop after the first success.

        Args:
            models: Model names to try.
            timeout_seconds: Per-probe timeout (defaults to settings).
            max_tokens: Per-probe completion budget (defaults to settings).

        Returns:
            UpstreamDiagnosticsResponse listing every attempted model.

        Raises:
            ConfigurationAppError: If the upstream credential is missing.
        """
        api_key = settings.upstream.api_key
        if not api_key:
            raise ConfigurationAppError(
                code="api_key_not_configured",
                message="API key not configured",
            )

        client = self._get_client()
        probe =[ChatMessage(role="user", content=PROBE_PROMPT)]
        timeout = timeout_seconds or settings.upstream.probe_timeout_seconds
        budget = max_tokens or settings.upstream.probe_max_tokens

        results: list[UpstreamProbeResult] = []
        for model in models:
            try:
                content = await client.complete(
                    probe,
                    model=model,
                    max_tokens=budget,
                    timeout=timeout,
                    sampling=False,
                )
            except UpstreamAppError as exc:
                logger.warning(
                    "upstream.probe_failed",
                    extra={"model": model, "upstream_code": exc.code},
                )
                results.append(
                    UpstreamProbeResult(
                        model=model,
                        status="failed",
                        error=(exc.details or {}).get("upstream_error") or exc.message,
                    )
                )
                continue

            results.append(
                UpstreamProbeResult(model=model, status="success", response=content or "No content")
            )
            break

        return UpstreamDiagnosticsResponse(
            api_key_configured=True,
            api_key_length=len(api_key),
            results=results,
        )
