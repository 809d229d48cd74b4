from fastapi.testclient import TestClient

from src.api.main import app
from src.api.narrative_config import set_completion_provider_for_tests
from tests.fakes import FailingCompletionProvider, StaticCompletionProvider, scenario_payload


def test_parse_requires_configured_provider():
    with TestClient(app) as client:
        response = client.post("/scenarios/parse", json={"query": "retire at 62"})

    assert response.status_code == 503


def test_parse_returns_wire_shaped_success():
    set_completion_provider_for_tests(
        StaticCompletionProvider(
            scenario_payload(
                {"savingsRate": 0.2, "retirementAge": 62},
                fields={"savingsRate": 0.95, "retirementAge": 0.9},
            )
        )
    )

    with TestClient(app) as client:
        response = client.post(
            "/scenarios/parse",
            json={"query": "bump my savings rate to 20% and retire at 62"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "error" not in body
    assert "errorCode" not in body
    assert body["data"]["overrides"] == {"savingsRate": 0.2, "retirementAge": 62}
    assert body["data"]["confidence"] == {
        "overall": 0.9,
        "fields": {"savingsRate": 0.95, "retirementAge": 0.9},
    }
    assert [field["displayValue"] for field in body["data"]["fields"]] == ["20.0%", "Age 62"]
    assert body["data"]["originalQuery"] == "bump my savings rate to 20% and retire at 62"


def test_parse_returns_domain_failure_with_ok_status():
    set_completion_provider_for_tests(FailingCompletionProvider())

    with TestClient(app) as client:
        response = client.post("/scenarios/parse", json={"query": "retire at 62"})

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "error": "AI provider unavailable",
        "errorCode": "UPSTREAM_UNAVAILABLE",
    }


def test_parse_applies_configured_confidence_threshold(monkeypatch):
    monkeypatch.setenv("SCENARIO_MIN_CONFIDENCE", "0.75")
    set_completion_provider_for_tests(
        StaticCompletionProvider(scenario_payload({"retirementAge": 62}, overall=0.5))
    )

    with TestClient(app) as client:
        response = client.post("/scenarios/parse", json={"query": "retire at 62 maybe"})

    assert response.json()["errorCode"] == "LOW_CONFIDENCE_REJECTED"


def test_parse_restricts_extraction_to_schema_keys():
    set_completion_provider_for_tests(
        StaticCompletionProvider(scenario_payload({"savingsRate": 0.2, "retirementAge": 62}))
    )

    with TestClient(app) as client:
        response = client.post(
            "/scenarios/parse",
            json={"query": "save 20% and retire at 62", "schemaKeys": ["savingsRate"]},
        )

    assert response.json()["data"]["overrides"] == {"savingsRate": 0.2}


def test_parse_rejects_unknown_schema_key():
    with TestClient(app) as client:
        response = client.post(
            "/scenarios/parse", json={"query": "retire", "schemaKeys": ["lotteryWinnings"]}
        )

    assert response.status_code == 422


def test_blank_query_is_a_domain_failure():
    set_completion_provider_for_tests(StaticCompletionProvider("{}"))

    with TestClient(app) as client:
        response = client.post("/scenarios/parse", json={"query": "   "})

    assert response.json()["errorCode"] == "INVALID_QUERY"
