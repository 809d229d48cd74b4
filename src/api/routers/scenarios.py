from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.narrative_config import get_scenario_parser
from src.api.observability import record_scenario_outcome
from src.api.request_models import ScenarioParseRequest
from src.core.scenarios import ScenarioParser, ScenarioParseResponse

router = APIRouter(tags=["Scenario Parsing"])

SCENARIO_PARSE_SUCCESS_EXAMPLE = {
    "summary": "Parsed scenario",
    "value": {
        "success": True,
        "data": {
            "overrides": {"savingsRate": 0.2, "retirementAge": 62},
            "fields": [
                {
                    "key": "savingsRate",
                    "label": "Savings Rate",
                    "value": 0.2,
                    "displayValue": "20.0%",
                    "confidence": 0.95,
                },
                {
                    "key": "retirementAge",
                    "label": "Retirement Age",
                    "value": 62,
                    "displayValue": "Age 62",
                    "confidence": 0.9,
                },
            ],
            "confidence": {"overall": 0.9, "fields": {"savingsRate": 0.95, "retirementAge": 0.9}},
            "originalQuery": "bump my savings rate to 20% and retire at 62",
        },
    },
}
SCENARIO_PARSE_FAILURE_EXAMPLE = {
    "summary": "Provider unavailable",
    "value": {
        "success": False,
        "error": "AI provider timed out",
        "errorCode": "UPSTREAM_UNAVAILABLE",
    },
}


@router.post(
    "/scenarios/parse",
    response_model=ScenarioParseResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Parse What-If Scenario",
    description=(
        "Extracts confidence-scored projection overrides from a free-text query.\n\n"
        "Domain failures (`UPSTREAM_UNAVAILABLE`, `UNPARSEABLE_RESPONSE`, "
        "`LOW_CONFIDENCE_REJECTED`, `INVALID_QUERY`) are returned with `success=false`."
    ),
    responses={
        200: {
            "description": "Parse outcome.",
            "content": {
                "application/json": {
                    "examples": {
                        "success": SCENARIO_PARSE_SUCCESS_EXAMPLE,
                        "failure": SCENARIO_PARSE_FAILURE_EXAMPLE,
                    }
                }
            },
        },
        503: {"description": "AI provider is not configured."},
    },
)
async def parse_scenario(
    request: ScenarioParseRequest,
    parser: Annotated[Optional[ScenarioParser], Depends(get_scenario_parser)],
) -> ScenarioParseResponse:
    if parser is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI_PROVIDER_NOT_CONFIGURED",
        )
    result = await parser.parse_scenario(request.query, request.schema_keys)
    record_scenario_outcome("SUCCESS" if result.success else (result.error_code or "FAILED"))
    return result
