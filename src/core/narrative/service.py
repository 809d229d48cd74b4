"""
FILE: src/core/narrative/service.py
Cached, validated narrative summaries for projection inputs.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.core.ai.provider import CompletionProvider, ProviderError
from src.core.common.canonical import cache_key_version, canonical_json, compute_cache_key
from src.core.narrative.cache import CachedSummary, SummaryCache
from src.core.narrative.policies import PLANNING_DISCLAIMER
from src.core.narrative.sections import (
    SUMMARY_SECTIONS,
    PlanSummarySections,
    build_summary_context,
    validate_summary_sections,
)
from src.core.narrative.validation import MissingSectionError, ResponseValidator

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_TIMEOUT_SECONDS = 30.0

PLAN_SUMMARY_SYSTEM_PROMPT = (
    "Summarize the retirement projection described by the user message in plain English. "
    'Return a JSON object with the string sections "whereYouStand", "assumptions", '
    f'"lifestyle" and "disclaimer". Use this exact disclaimer: "{PLANNING_DISCLAIMER}"'
)

SummaryStatus = Literal["CACHED", "GENERATED", "REJECTED", "FAILED"]


class NarrativeSummaryOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: SummaryStatus = Field(
        description=(
            "CACHED and GENERATED carry a validated summary; REJECTED and FAILED never do."
        ),
        examples=["GENERATED"],
    )
    cache_key: str = Field(alias="cacheKey", description="Fingerprint of the projection input.")
    projection_version: str = Field(
        alias="projectionVersion", description="Short fingerprint prefix for display."
    )
    summary: Optional[PlanSummarySections] = None
    model: Optional[str] = None
    generated_at: Optional[datetime] = Field(default=None, alias="generatedAt")
    violations: list[str] = Field(default_factory=list)
    reason: Optional[str] = Field(default=None, examples=["BANNED_PHRASES"])

    @property
    def usable(self) -> bool:
        return self.status in {"CACHED", "GENERATED"}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NarrativeSummaryService:
    def __init__(
        self,
        *,
        provider: CompletionProvider,
        cache: SummaryCache,
        validator: ResponseValidator,
        timeout_seconds: float = DEFAULT_SUMMARY_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._validator = validator
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    async def summarize(
        self,
        projection_input: Any,
        *,
        context: Optional[Mapping[str, Any]] = None,
        regenerate: bool = False,
    ) -> NarrativeSummaryOutcome:
        cache_key = compute_cache_key(projection_input)
        version = cache_key_version(cache_key)

        if not regenerate:
            cached = self._cache.get(cache_key=cache_key)
            if cached is not None:
                logger.debug("Narrative summary cache hit. version=%s", version)
                return NarrativeSummaryOutcome(
                    status="CACHED",
                    cache_key=cache_key,
                    projection_version=version,
                    summary=cached.sections,
                    model=cached.model,
                    generated_at=cached.created_at,
                )

        user_message = canonical_json(build_summary_context(projection_input, context))
        started = time.perf_counter()
        try:
            content = await asyncio.wait_for(
                self._provider.complete(
                    system_prompt=PLAN_SUMMARY_SYSTEM_PROMPT,
                    user_message=user_message,
                ),
                timeout=self._timeout_seconds,
            )
        except (TimeoutError, ProviderError) as exc:
            logger.warning("Narrative provider unavailable. version=%s error=%r", version, exc)
            return self._failed(cache_key, "UPSTREAM_UNAVAILABLE")
        generation_time_ms = round((time.perf_counter() - started) * 1000)

        try:
            raw_sections = json.loads(content)
        except (TypeError, ValueError):
            return self._failed(cache_key, "UNPARSEABLE_RESPONSE")
        if not isinstance(raw_sections, dict):
            return self._failed(cache_key, "UNPARSEABLE_RESPONSE")

        try:
            validation = validate_summary_sections(raw_sections, self._validator)
        except MissingSectionError as exc:
            logger.warning("Narrative response missing section '%s'.", exc.section)
            return self._failed(cache_key, f"MISSING_SECTION: {exc.section}")
        except TypeError:
            return self._failed(cache_key, "UNPARSEABLE_RESPONSE")

        if not validation.valid:
            logger.warning(
                "Narrative response rejected for banned phrases.",
                extra={"extra_fields": {"violations": validation.violations, "version": version}},
            )
            return NarrativeSummaryOutcome(
                status="REJECTED",
                cache_key=cache_key,
                projection_version=version,
                violations=validation.violations,
                reason="BANNED_PHRASES",
            )

        try:
            sections = PlanSummarySections.model_validate(
                {name: raw_sections[name] for name in SUMMARY_SECTIONS}
            )
        except ValidationError:
            logger.warning("Narrative response sections failed type checks. version=%s", version)
            return self._failed(cache_key, "UNPARSEABLE_RESPONSE")
        stored = CachedSummary(
            cache_key=cache_key,
            sections=sections,
            model=self._provider.model_name,
            generation_time_ms=generation_time_ms,
            created_at=self._clock(),
        )
        self._cache.put(stored)
        return NarrativeSummaryOutcome(
            status="GENERATED",
            cache_key=cache_key,
            projection_version=version,
            summary=sections,
            model=stored.model,
            generated_at=stored.created_at,
        )

    @staticmethod
    def _failed(cache_key: str, reason: str) -> NarrativeSummaryOutcome:
        return NarrativeSummaryOutcome(
            status="FAILED",
            cache_key=cache_key,
            projection_version=cache_key_version(cache_key),
            reason=reason,
        )
