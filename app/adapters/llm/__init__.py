"""Upstream chat-completion adapter layer."""

from app.adapters.llm.base import AbstractChatClient
from app.adapters.llm.factory import create_chat_client
from app.adapters.llm.perplexity_client import PerplexityClient

__all__ = [
    "AbstractChatClient",
    "PerplexityClient",
    "create_chat_client",
]
