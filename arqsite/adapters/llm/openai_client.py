"""OpenAI chat-completions adapter for site copy, chat replies and lead intel."""

import json
from typing import Any

from openai import AsyncOpenAI

from arqsite.adapters.llm.base import AbstractLLMClient

JSON_SYSTEM_PROMPT = "Output JSON only. No extra text or markdown formatting."

# Sampling options callers may forward to generate_json
_PASSTHROUGH_OPTIONS = ("max_tokens", "top_p", "frequency_penalty", "presence_penalty", "seed")


def _messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


class OpenAIClient(AbstractLLMClient):
    """Async OpenAI client; also works with OpenAI-compatible gateways via ``base_url``.

    Attributes:
        client: Underlying ``AsyncOpenAI`` instance.
        model: Chat model used for every request.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
    ) -> None:
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_seconds)
        self.model = model

    async def _complete(self, **request_params: Any) -> str:
        """Run one completion and return its stripped text.

        Raises:
            RuntimeError: On any provider error or an empty completion.
        """
        try:
            response = await self.client.chat.completions.create(model=self.model, **request_params)
            content = response.choices[0].message.content
        except Exception as exc:
            raise RuntimeError(f"OpenAI API error: {exc}") from exc

        if not content or not content.strip():
            raise RuntimeError("LLM returned empty response")
        return content.strip()

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> str:
        return await self._complete(
            messages=_messages(system_prompt, user_prompt),
            max_tokens=max_tokens,
            temperature=temperature,
        )

    async def generate_json(
        self,
        prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Ask for a JSON object and parse it.

        Passing ``schema`` switches the request to JSON mode; the schema itself
        is validated by the caller. Temperature defaults to 0.2.

        Raises:
            RuntimeError: If the call fails or the reply is not valid JSON.
        """
        options: dict[str, Any] = {
            "temperature": kwargs.get("temperature", 0.2),
            **{name: kwargs[name] for name in _PASSTHROUGH_OPTIONS if name in kwargs},
        }
        if schema is not None:
            options["response_format"] = {"type": "json_object"}

        content = await self._complete(messages=_messages(JSON_SYSTEM_PROMPT, prompt), **options)

        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"LLM returned invalid JSON: {exc}") from exc
