"""
FILE: tests/conftest.py
Shared fixtures for narrative integrity tests.
"""

from pathlib import Path

import pytest

from src.api.narrative_config import reset_narrative_services_for_tests
from src.core.narrative import ResponseValidator
from src.infrastructure.summary_cache import InMemorySummaryCache


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if _has_marker(item, "unit") or _has_marker(item, "integration"):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        item.add_marker(pytest.mark.unit)


@pytest.fixture
def projection_input():
    return {
        "currentAge": 45,
        "retirementAge": 65,
        "maxAge": 90,
        "annualContribution": 18000,
        "expectedReturn": 0.07,
        "inflationRate": 0.03,
        "annualExpenses": 54000,
        "balancesByType": {"taxDeferred": 250000, "taxFree": 40000, "taxable": 60000},
        "incomeStreams": [{"name": "Social Security", "annualAmount": 24000, "startAge": 67}],
    }


@pytest.fixture
def summary_cache():
    return InMemorySummaryCache(max_entries=10)


@pytest.fixture
def validator():
    return ResponseValidator()


@pytest.fixture(autouse=True)
def narrative_runtime_test_harness(monkeypatch: pytest.MonkeyPatch):
    """Start every test without a live AI provider or leftover cached state."""

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("AI_PROVIDER_BACKEND", raising=False)
    monkeypatch.delenv("SCENARIO_MIN_CONFIDENCE", raising=False)
    monkeypatch.delenv("NARRATIVE_BANNED_PHRASES_JSON", raising=False)
    reset_narrative_services_for_tests()
    yield
    reset_narrative_services_for_tests()
