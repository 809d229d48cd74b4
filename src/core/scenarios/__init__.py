from src.core.scenarios.models import (
    OverrideKey,
    ParsedScenario,
    ParsedScenarioField,
    ProjectionOverrides,
    ScenarioConfidence,
    ScenarioParseResponse,
)
from src.core.scenarios.parser import ScenarioParser, aggregate_confidence

__all__ = [
    "OverrideKey",
    "ParsedScenario",
    "ParsedScenarioField",
    "ProjectionOverrides",
    "ScenarioConfidence",
    "ScenarioParseResponse",
    "ScenarioParser",
    "aggregate_confidence",
]
