from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
	"""Provider-neutral interface used by content generation, chat and lead intel.

	Implementations raise ``RuntimeError`` for every provider failure so callers
	can degrade (fallback reply, no intel) or map it to ``LLMAppError``.
	"""

	@abstractmethod
	async def generate_text(
		self,
		system_prompt: str,
		user_prompt: str,
		*,
		max_tokens: int = 1024,
		temperature: float = 0.7,
	) -> str:
		"""Return the stripped completion for a system + user prompt pair."""
		...

	@abstractmethod
	async def generate_json(
		self,
		prompt: str,
		*,
		schema: dict[str, Any] | None = None,
		**kwargs: Any,
	) -> dict[str, Any]:
		"""Return the completion parsed as a JSON object.

		Args:
			prompt: Request for the model; it should describe the expected keys.
			schema: JSON schema of the expected object; enables JSON mode where
				the provider supports it.
			**kwargs: Sampling options such as temperature or max_tokens.
		"""
		...
