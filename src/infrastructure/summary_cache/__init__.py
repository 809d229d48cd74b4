from src.infrastructure.summary_cache.in_memory import InMemorySummaryCache

__all__ = ["InMemorySummaryCache"]
