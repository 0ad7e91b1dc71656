"""Factory for creating the upstream chat client."""

from app.adapters.llm.base import AbstractChatClient
from app.adapters.llm.perplexity_client import PerplexityClient
from app.core.config import settings
from app.core.errors import ConfigurationAppError


def create_chat_client() -> AbstractChatClient:
    """Instantiate the Perplexity client from current settings.

    Called lazily by the chat service (not at import time) so that a missing
    key surfaces as an HTTP 500 on the request that needs it rather than a
    boot failure.

    Returns:
        AbstractChatClient: Configured client instance.

    Raises:
        ConfigurationAppError: If PERPLEXITY_API_KEY is not set.
    """
    upstream = settings.upstream

    if not upstream.api_key:
        raise ConfigurationAppError(
            code="api_key_not_configured",
            message="API key not configured",
            details={"hint": "Set the PERPLEXITY_API_KEY environment variable"},
        )

    return PerplexityClient(
        api_key=upstream.api_key,
        model=upstream.model,
        base_url=upstream.base_url,
        timeout_seconds=upstream.timeout_seconds,
        max_tokens=upstream.max_tokens,
        temperature=upstream.temperature,
        top_p=upstream.top_p,
        return_citations=upstream.return_citations,
        search_recency_filter=upstream.search_recency_filter,
    )
