from abc import ABC, abstractmethod
from typing import Any

from app.schemas.chat import ChatMessage


class AbstractChatClient(ABC):
	"""Interface for chat-completion clients returning plain text answers."""

	@abstractmethod
	async def complete(
		self,
		messages: list[ChatMessage],
		**kwargs: Any,
	) -> str | None:
		"""Send a conversation and return the first completion's text.

		Args:
			messages: Ordered conversation (system prompt first).
			**kwargs: Per-call overrides (e.g., model, max_tokens, timeout).

		Returns:
			str | None: The completion text, or None when the provider
			returned no choices/content.

		Raises:
			UpstreamAppError: If the provider call fails.
		"""
		...

	async def aclose(self) -> None:
		"""Release network resources held by the client."""
		return None
