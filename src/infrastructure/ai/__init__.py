from src.infrastructure.ai.openai_provider import OpenAIChatProvider

__all__ = ["OpenAIChatProvider"]
