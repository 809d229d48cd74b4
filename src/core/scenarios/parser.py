"""
FILE: src/core/scenarios/parser.py
Maps a free-text "what if" query onto confidence-scored projection overrides.
"""

import asyncio
import json
import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from src.core.ai.provider import CompletionProvider, ProviderError
from src.core.scenarios.models import (
    FIELD_LABELS,
    OverrideKey,
    OverrideValue,
    ParsedScenario,
    ParsedScenarioField,
    ProjectionOverrides,
    ScenarioConfidence,
    ScenarioParseResponse,
    format_display_value,
)

logger = logging.getLogger(__name__)

DEFAULT_FIELD_CONFIDENCE = 0.8
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 30.0


def build_scenario_parse_prompt(schema: Iterable[OverrideKey]) -> str:
    keys = ", ".join(key.value for key in schema)
    return (
        "Extract retirement projection parameters from the user's question. "
        'Return a JSON object {"overrides": {<key>: number | null}, '
        '"confidence": {"overall": number, "fields": {<key>: number}}} '
        f"using only these keys: {keys}. Express percentages as decimals."
    )


def aggregate_confidence(field_confidences: Iterable[float]) -> float:
    """Overall confidence is the weakest field confidence."""
    return min(field_confidences)


def _clamp_confidence(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def _as_confidence(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value:
        return None
    return _clamp_confidence(value)


def _resolve_schema(schema: Optional[Iterable[OverrideKey | str]]) -> tuple[OverrideKey, ...]:
    if schema is None:
        return tuple(OverrideKey)
    resolved: list[OverrideKey] = []
    for key in schema:
        override_key = OverrideKey(key)
        if override_key not in resolved:
            resolved.append(override_key)
    return tuple(resolved)


class ScenarioParser:
    def __init__(
        self,
        *,
        provider: CompletionProvider,
        min_confidence: Optional[float] = None,
        timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    ) -> None:
        if min_confidence is not None and not 0 <= min_confidence <= 1:
            raise ValueError("min_confidence must be between 0 and 1 inclusive")
        self._provider = provider
        self._min_confidence = min_confidence
        self._timeout_seconds = timeout_seconds

    async def parse_scenario(
        self,
        query: str,
        schema: Optional[Iterable[OverrideKey | str]] = None,
    ) -> ScenarioParseResponse:
        if not isinstance(query, str) or not query.strip():
            return ScenarioParseResponse.failed("INVALID_QUERY", "Query is required")
        keys = _resolve_schema(schema)

        raw = await self._request_extraction(query=query, schema=keys)
        if isinstance(raw, ScenarioParseResponse):
            return raw

        payload = _decode_payload(raw)
        if payload is None:
            logger.warning("Scenario provider returned a non-object or non-JSON payload.")
            return ScenarioParseResponse.failed(
                "UNPARSEABLE_RESPONSE", "Provider response could not be parsed"
            )

        scenario = self._map_onto_schema(query=query, payload=payload, schema=keys)
        if scenario is None:
            return ScenarioParseResponse.failed(
                "UNPARSEABLE_RESPONSE", "No recognizable scenario parameters were found"
            )

        if self._min_confidence is not None and scenario.confidence.overall < self._min_confidence:
            logger.info(
                "Scenario rejected for low confidence.",
                extra={
                    "extra_fields": {
                        "overall_confidence": scenario.confidence.overall,
                        "min_confidence": self._min_confidence,
                    }
                },
            )
            return ScenarioParseResponse.failed(
                "LOW_CONFIDENCE_REJECTED",
                (
                    f"Overall confidence {scenario.confidence.overall:.2f} is below "
                    f"the required {self._min_confidence:.2f}"
                ),
            )
        return ScenarioParseResponse.succeeded(scenario)

    async def _request_extraction(
        self, *, query: str, schema: tuple[OverrideKey, ...]
    ) -> str | ScenarioParseResponse:
        try:
            return await asyncio.wait_for(
                self._provider.complete(
                    system_prompt=build_scenario_parse_prompt(schema),
                    user_message=query,
                ),
                timeout=self._timeout_seconds,
            )
        except TimeoutError:
            logger.warning("Scenario provider timed out after %ss.", self._timeout_seconds)
            return ScenarioParseResponse.failed(
                "UPSTREAM_UNAVAILABLE", "AI provider timed out"
            )
        except ProviderError as exc:
            logger.warning("Scenario provider failed: %s", exc)
            return ScenarioParseResponse.failed("UPSTREAM_UNAVAILABLE", "AI provider unavailable")
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            logger.warning("Scenario provider call was cancelled upstream.")
            return ScenarioParseResponse.failed(
                "UPSTREAM_UNAVAILABLE", "AI provider call was cancelled"
            )

    def _map_onto_schema(
        self, *, query: str, payload: dict[str, Any], schema: tuple[OverrideKey, ...]
    ) -> Optional[ParsedScenario]:
        raw_overrides = payload.get("overrides")
        if not isinstance(raw_overrides, dict):
            return None
        raw_confidence = payload.get("confidence")
        if not isinstance(raw_confidence, dict):
            raw_confidence = {}
        raw_field_confidence = raw_confidence.get("fields")
        if not isinstance(raw_field_confidence, dict):
            raw_field_confidence = {}
        provider_overall = _as_confidence(raw_confidence.get("overall"))

        accepted: dict[str, OverrideValue] = {}
        confidences: dict[OverrideKey, float] = {}
        for raw_key, raw_value in raw_overrides.items():
            if raw_value is None:
                continue
            key = next((k for k in schema if k.value == raw_key), None)
            if key is None:
                logger.info("Dropping unknown scenario override key '%s'.", raw_key)
                continue
            if key in confidences:
                continue
            value = _validate_override_value(key, raw_value)
            if value is None:
                logger.info("Dropping invalid value for scenario override '%s'.", raw_key)
                continue
            accepted[key.value] = value
            field_confidence = _as_confidence(raw_field_confidence.get(key.value))
            if field_confidence is None:
                field_confidence = (
                    provider_overall if provider_overall is not None else DEFAULT_FIELD_CONFIDENCE
                )
            confidences[key] = field_confidence

        if not accepted:
            return None

        overrides = ProjectionOverrides.model_validate(accepted)
        fields = [
            ParsedScenarioField(
                key=key,
                label=FIELD_LABELS[key],
                value=accepted[key.value],
                display_value=format_display_value(key, accepted[key.value]),
                confidence=confidences[key],
            )
            for key in confidences
        ]
        return ParsedScenario(
            overrides=overrides,
            fields=fields,
            confidence=ScenarioConfidence(
                overall=aggregate_confidence(confidences.values()),
                fields=confidences,
            ),
            original_query=query,
        )


def _decode_payload(raw: str) -> Optional[dict[str, Any]]:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


def _validate_override_value(key: OverrideKey, raw_value: Any) -> Optional[OverrideValue]:
    if isinstance(raw_value, bool):
        return None
    try:
        validated = ProjectionOverrides.model_validate({key.value: raw_value})
    except ValidationError:
        return None
    return validated.as_wire_dict().get(key.value)
