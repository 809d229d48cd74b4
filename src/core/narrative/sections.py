from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.core.narrative.validation import ResponseValidator, ValidationResult

LifestyleLabel = Literal["simple", "moderate", "flexible"]

SIMPLE_LIFESTYLE_MONTHLY_CEILING = 2500
MODERATE_LIFESTYLE_MONTHLY_CEILING = 5500

NARRATIVE_SECTIONS = ("whereYouStand", "assumptions", "lifestyle")
EXEMPT_SECTIONS = ("disclaimer",)
SUMMARY_SECTIONS = NARRATIVE_SECTIONS + EXEMPT_SECTIONS


class PlanSummarySections(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    where_you_stand: str = Field(
        alias="whereYouStand",
        description="Current retirement readiness in two or three sentences.",
    )
    assumptions: str = Field(description="Key return, inflation, and life-expectancy assumptions.")
    lifestyle: str = Field(description="What the projection means for day-to-day retirement.")
    disclaimer: str = Field(description="Fixed planning disclaimer template.")


def lifestyle_label(monthly_spending: float) -> LifestyleLabel:
    if monthly_spending < SIMPLE_LIFESTYLE_MONTHLY_CEILING:
        return "simple"
    if monthly_spending < MODERATE_LIFESTYLE_MONTHLY_CEILING:
        return "moderate"
    return "flexible"


def build_summary_context(
    projection_input: Any, context: Optional[Mapping[str, Any]] = None
) -> Any:
    """
    Payload sent to the provider for a plan summary.

    Caller context wins over the raw projection input. When the input carries
    `annualExpenses`, the monthly spending and its lifestyle label are added
    unless the context already names a label.
    """
    if context is not None:
        payload: Any = dict(context)
    elif isinstance(projection_input, Mapping):
        payload = dict(projection_input)
    else:
        return projection_input

    annual_expenses = (
        projection_input.get("annualExpenses") if isinstance(projection_input, Mapping) else None
    )
    if "lifestyleLabel" in payload or isinstance(annual_expenses, bool):
        return payload
    if not isinstance(annual_expenses, (int, float)):
        return payload
    monthly_spending = round(annual_expenses / 12)
    payload.setdefault("monthlySpending", monthly_spending)
    payload["lifestyleLabel"] = lifestyle_label(monthly_spending)
    return payload


def validate_summary_sections(
    sections: Union[PlanSummarySections, Mapping[str, Optional[str]]],
    validator: ResponseValidator,
) -> ValidationResult:
    if isinstance(sections, PlanSummarySections):
        raw: Mapping[str, Optional[str]] = sections.model_dump(by_alias=True)
    else:
        raw = {name: sections.get(name) for name in SUMMARY_SECTIONS}
    # Disclaimer is a fixed template and is never scanned.
    return validator.validate_sections(raw, exempt=EXEMPT_SECTIONS, required=SUMMARY_SECTIONS)
