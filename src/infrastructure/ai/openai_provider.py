from importlib.util import find_spec
from typing import Any, Optional

from src.core.ai.provider import ProviderError

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class OpenAIChatProvider:
    """Chat-completions provider in JSON-object mode. SDK failures surface as ProviderError."""

    def __init__(
        self,
        *,
        api_key: str,
        model_name: str = DEFAULT_OPENAI_MODEL,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        client: Optional[Any] = None,
    ) -> None:
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY_REQUIRED")
        self.model_name = model_name
        self._temperature = temperature
        self._max_tokens = max_tokens
        if client is None:
            if find_spec("openai") is None:
                raise RuntimeError("OPENAI_DRIVER_MISSING")
            client = _import_openai().AsyncOpenAI(api_key=api_key)
        self._client = client

    async def complete(self, *, system_prompt: str, user_message: str) -> str:
        openai = _import_openai()
        try:
            completion = await self._client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                response_format={"type": "json_object"},
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except openai.OpenAIError as exc:
            raise ProviderError(f"OPENAI_REQUEST_FAILED: {type(exc).__name__}") from exc

        choices = getattr(completion, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            raise ProviderError("OPENAI_EMPTY_RESPONSE")
        return content


def _import_openai():
    import openai

    return openai
