import logging
import os
from typing import Optional

from src.core.ai.provider import CompletionProvider
from src.core.narrative import NarrativeSummaryService, RegenerationLimiter, ResponseValidator
from src.core.narrative.policies import PLAN_SUMMARY_BANNED_PHRASES, parse_banned_phrases
from src.core.scenarios import ScenarioParser
from src.infrastructure.ai import OpenAIChatProvider
from src.infrastructure.summary_cache import InMemorySummaryCache

logger = logging.getLogger(__name__)

_PROVIDER: Optional[CompletionProvider] = None
_CACHE: Optional[InMemorySummaryCache] = None
_LIMITER: Optional[RegenerationLimiter] = None


def env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


def env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def ai_provider_backend_name() -> str:
    default = "OPENAI" if os.getenv("OPENAI_API_KEY", "").strip() else "DISABLED"
    backend = os.getenv("AI_PROVIDER_BACKEND", default).strip().upper()
    return "OPENAI" if backend == "OPENAI" else "DISABLED"


def ai_model_name() -> str:
    return os.getenv("AI_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"


def ai_provider_timeout_seconds() -> float:
    timeout = env_float("AI_PROVIDER_TIMEOUT_SECONDS", 30.0)
    return timeout if timeout else 30.0


def scenario_min_confidence() -> Optional[float]:
    threshold = env_float("SCENARIO_MIN_CONFIDENCE", None)
    if threshold is not None and threshold > 1:
        return None
    return threshold


def narrative_banned_phrases() -> tuple[str, ...]:
    configured = parse_banned_phrases(os.getenv("NARRATIVE_BANNED_PHRASES_JSON"))
    return configured if configured is not None else PLAN_SUMMARY_BANNED_PHRASES


def build_provider() -> Optional[CompletionProvider]:
    if ai_provider_backend_name() != "OPENAI":
        return None
    api_key = os.getenv("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY_REQUIRED")
    return OpenAIChatProvider(api_key=api_key, model_name=ai_model_name())


def get_completion_provider() -> Optional[CompletionProvider]:
    global _PROVIDER
    if _PROVIDER is None:
        _PROVIDER = build_provider()
        if _PROVIDER is None:
            logger.warning("AI provider is disabled; scenario parsing and summaries unavailable.")
    return _PROVIDER


def set_completion_provider_for_tests(provider: Optional[CompletionProvider]) -> None:
    global _PROVIDER
    _PROVIDER = provider


def get_summary_cache() -> InMemorySummaryCache:
    global _CACHE
    if _CACHE is None:
        _CACHE = InMemorySummaryCache(max_entries=env_int("NARRATIVE_CACHE_MAX_ENTRIES", 1000))
    return _CACHE


def get_regeneration_limiter() -> RegenerationLimiter:
    global _LIMITER
    if _LIMITER is None:
        _LIMITER = RegenerationLimiter(max_per_day=env_int("AI_REGENERATION_DAILY_LIMIT", 10))
    return _LIMITER


def get_response_validator() -> ResponseValidator:
    return ResponseValidator(narrative_banned_phrases())


def get_scenario_parser() -> Optional[ScenarioParser]:
    provider = get_completion_provider()
    if provider is None:
        return None
    return ScenarioParser(
        provider=provider,
        min_confidence=scenario_min_confidence(),
        timeout_seconds=ai_provider_timeout_seconds(),
    )


def get_summary_service() -> Optional[NarrativeSummaryService]:
    provider = get_completion_provider()
    if provider is None:
        return None
    return NarrativeSummaryService(
        provider=provider,
        cache=get_summary_cache(),
        validator=get_response_validator(),
        timeout_seconds=ai_provider_timeout_seconds(),
    )


def reset_narrative_services_for_tests() -> None:
    global _PROVIDER
    global _CACHE
    global _LIMITER
    _PROVIDER = None
    _CACHE = None
    _LIMITER = None
