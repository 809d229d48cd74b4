from typing import Protocol


class ProviderError(Exception):
    """Raised by a completion provider when no usable text could be produced."""


class CompletionProvider(Protocol):
    model_name: str

    async def complete(self, *, system_prompt: str, user_message: str) -> str: ...
