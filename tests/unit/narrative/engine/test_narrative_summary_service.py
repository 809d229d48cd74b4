import asyncio
import json
from datetime import datetime, timezone

import pytest

from src.core.common.canonical import SerializationError, compute_cache_key
from src.core.narrative import NarrativeSummaryService, ResponseValidator
from tests.fakes import (
    FailingCompletionProvider,
    SlowCompletionProvider,
    StaticCompletionProvider,
    summary_payload,
)

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _service(provider, cache, validator=None, **kwargs):
    return NarrativeSummaryService(
        provider=provider,
        cache=cache,
        validator=validator or ResponseValidator(),
        clock=lambda: FIXED_NOW,
        **kwargs,
    )


def test_summary_is_generated_validated_and_cached(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload(), model_name="gpt-4o-mini")
    service = _service(provider, summary_cache)

    outcome = asyncio.run(service.summarize(projection_input))

    assert outcome.status == "GENERATED"
    assert outcome.usable is True
    assert outcome.cache_key == compute_cache_key(projection_input)
    assert outcome.projection_version == outcome.cache_key[:8]
    assert outcome.summary.where_you_stand == summary_payload()["whereYouStand"]
    assert outcome.model == "gpt-4o-mini"
    assert outcome.generated_at == FIXED_NOW
    assert len(summary_cache) == 1
    assert summary_cache.get(cache_key=outcome.cache_key).model == "gpt-4o-mini"


def test_second_request_is_served_from_cache(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload())
    service = _service(provider, summary_cache)

    first = asyncio.run(service.summarize(projection_input))
    second = asyncio.run(service.summarize(projection_input))

    assert second.status == "CACHED"
    assert second.summary == first.summary
    assert len(provider.calls) == 1


def test_reordered_projection_input_hits_the_same_cache_entry(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload())
    service = _service(provider, summary_cache)
    reordered = dict(reversed(list(projection_input.items())))

    asyncio.run(service.summarize(projection_input))
    outcome = asyncio.run(service.summarize(reordered))

    assert outcome.status == "CACHED"
    assert len(provider.calls) == 1


def test_changed_projection_input_misses_the_cache(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload())
    service = _service(provider, summary_cache)

    asyncio.run(service.summarize(projection_input))
    outcome = asyncio.run(service.summarize({**projection_input, "retirementAge": 62}))

    assert outcome.status == "GENERATED"
    assert len(provider.calls) == 2
    assert len(summary_cache) == 2


def test_regenerate_bypasses_cache_and_replaces_entry(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload())
    service = _service(provider, summary_cache)
    asyncio.run(service.summarize(projection_input))
    provider.content = json.dumps(summary_payload(lifestyle="A simpler lifestyle fits this plan."))

    outcome = asyncio.run(service.summarize(projection_input, regenerate=True))

    assert outcome.status == "GENERATED"
    assert len(provider.calls) == 2
    cached = summary_cache.get(cache_key=outcome.cache_key)
    assert cached.sections.lifestyle == "A simpler lifestyle fits this plan."


def test_banned_phrase_rejects_summary_and_never_caches(projection_input, summary_cache):
    provider = StaticCompletionProvider(
        summary_payload(whereYouStand="You must save more to stay on track.")
    )
    service = _service(provider, summary_cache)

    outcome = asyncio.run(service.summarize(projection_input))

    assert outcome.status == "REJECTED"
    assert outcome.usable is False
    assert outcome.summary is None
    assert outcome.violations == ["you must"]
    assert outcome.reason == "BANNED_PHRASES"
    assert len(summary_cache) == 0


def test_banned_phrase_in_disclaimer_does_not_reject(projection_input, summary_cache):
    provider = StaticCompletionProvider(
        summary_payload(disclaimer="You must consult a qualified professional.")
    )

    outcome = asyncio.run(_service(provider, summary_cache).summarize(projection_input))

    assert outcome.status == "GENERATED"


def test_injected_policy_is_used(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload())
    service = _service(provider, summary_cache, validator=ResponseValidator(["annual returns"]))

    outcome = asyncio.run(service.summarize(projection_input))

    assert outcome.status == "REJECTED"
    assert outcome.violations == ["annual returns"]


def test_missing_section_fails_without_caching(projection_input, summary_cache):
    payload = summary_payload()
    del payload["lifestyle"]
    provider = StaticCompletionProvider(payload)

    outcome = asyncio.run(_service(provider, summary_cache).summarize(projection_input))

    assert outcome.status == "FAILED"
    assert outcome.reason == "MISSING_SECTION: lifestyle"
    assert len(summary_cache) == 0


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "[]",
        json.dumps(summary_payload(assumptions=7)),
        json.dumps(summary_payload(disclaimer=123)),
        json.dumps(summary_payload(disclaimer=["not", "text"])),
    ],
)
def test_unparseable_response_fails(projection_input, summary_cache, content):
    outcome = asyncio.run(
        _service(StaticCompletionProvider(content), summary_cache).summarize(projection_input)
    )

    assert outcome.status == "FAILED"
    assert outcome.reason == "UNPARSEABLE_RESPONSE"
    assert len(summary_cache) == 0


def test_provider_failure_is_reported_as_upstream_unavailable(projection_input, summary_cache):
    outcome = asyncio.run(
        _service(FailingCompletionProvider(), summary_cache).summarize(projection_input)
    )

    assert outcome.status == "FAILED"
    assert outcome.reason == "UPSTREAM_UNAVAILABLE"
    assert outcome.summary is None


def test_provider_timeout_is_reported_as_upstream_unavailable(projection_input, summary_cache):
    service = _service(SlowCompletionProvider(delay_seconds=5), summary_cache, timeout_seconds=0.01)

    outcome = asyncio.run(service.summarize(projection_input))

    assert outcome.status == "FAILED"
    assert outcome.reason == "UPSTREAM_UNAVAILABLE"


def test_context_is_sent_instead_of_raw_projection_input(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload())
    context = {"yearsToRetirement": 20, "lifestyleLabel": "moderate"}

    asyncio.run(_service(provider, summary_cache).summarize(projection_input, context=context))

    assert json.loads(provider.calls[0]["user_message"]) == context


def test_unserializable_projection_input_raises(summary_cache):
    provider = StaticCompletionProvider(summary_payload())

    with pytest.raises(SerializationError):
        asyncio.run(_service(provider, summary_cache).summarize({"balances": {1, 2, 3}}))
    assert provider.calls == []


def test_non_string_disclaimer_fails_instead_of_raising(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload(disclaimer={"text": "advice"}))

    outcome = asyncio.run(_service(provider, summary_cache).summarize(projection_input))

    assert outcome.status == "FAILED"
    assert outcome.reason == "UNPARSEABLE_RESPONSE"
    assert outcome.summary is None
    assert len(summary_cache) == 0


def test_provider_receives_lifestyle_label_from_projection_input(projection_input, summary_cache):
    provider = StaticCompletionProvider(summary_payload())

    asyncio.run(_service(provider, summary_cache).summarize(projection_input))

    sent = json.loads(provider.calls[0]["user_message"])
    assert sent["lifestyleLabel"] == "moderate"
    assert sent["monthlySpending"] == 4500
