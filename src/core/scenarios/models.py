"""
FILE: src/core/scenarios/models.py
Override schema and parsed-scenario contracts.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OverrideKey(str, Enum):
    EXPECTED_RETURN = "expectedReturn"
    INFLATION_RATE = "inflationRate"
    RETIREMENT_AGE = "retirementAge"
    MAX_AGE = "maxAge"
    CONTRIBUTION_GROWTH_RATE = "contributionGrowthRate"
    ANNUAL_HEALTHCARE_COSTS = "annualHealthcareCosts"
    HEALTHCARE_INFLATION_RATE = "healthcareInflationRate"
    SAVINGS_RATE = "savingsRate"


FIELD_LABELS: dict[OverrideKey, str] = {
    OverrideKey.EXPECTED_RETURN: "Expected Return",
    OverrideKey.INFLATION_RATE: "Inflation Rate",
    OverrideKey.RETIREMENT_AGE: "Retirement Age",
    OverrideKey.MAX_AGE: "Life Expectancy",
    OverrideKey.CONTRIBUTION_GROWTH_RATE: "Contribution Growth Rate",
    OverrideKey.ANNUAL_HEALTHCARE_COSTS: "Annual Healthcare Costs",
    OverrideKey.HEALTHCARE_INFLATION_RATE: "Healthcare Inflation Rate",
    OverrideKey.SAVINGS_RATE: "Savings Rate",
}

PERCENT_KEYS = frozenset(
    {
        OverrideKey.EXPECTED_RETURN,
        OverrideKey.INFLATION_RATE,
        OverrideKey.CONTRIBUTION_GROWTH_RATE,
        OverrideKey.HEALTHCARE_INFLATION_RATE,
        OverrideKey.SAVINGS_RATE,
    }
)
AGE_KEYS = frozenset({OverrideKey.RETIREMENT_AGE, OverrideKey.MAX_AGE})

OverrideValue = Union[int, float, str]
ConfidenceScore = Annotated[float, Field(ge=0, le=1)]

ScenarioParseErrorCode = Literal[
    "UPSTREAM_UNAVAILABLE",
    "UNPARSEABLE_RESPONSE",
    "LOW_CONFIDENCE_REJECTED",
    "INVALID_QUERY",
]


class ProjectionOverrides(BaseModel):
    """Partial projection parameters a scenario query may set; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    expected_return: Optional[float] = Field(
        default=None, ge=0, le=0.3, alias="expectedReturn", examples=[0.07]
    )
    inflation_rate: Optional[float] = Field(
        default=None, ge=0, le=0.2, alias="inflationRate", examples=[0.03]
    )
    retirement_age: Optional[int] = Field(
        default=None, ge=30, le=80, alias="retirementAge", examples=[62]
    )
    max_age: Optional[int] = Field(default=None, ge=50, le=120, alias="maxAge", examples=[90])
    contribution_growth_rate: Optional[float] = Field(
        default=None, ge=0, le=0.2, alias="contributionGrowthRate", examples=[0.02]
    )
    annual_healthcare_costs: Optional[float] = Field(
        default=None, ge=0, le=100000, alias="annualHealthcareCosts", examples=[12000]
    )
    healthcare_inflation_rate: Optional[float] = Field(
        default=None, ge=0, le=0.2, alias="healthcareInflationRate", examples=[0.05]
    )
    savings_rate: Optional[float] = Field(
        default=None, ge=0, le=1, alias="savingsRate", examples=[0.2]
    )

    def as_wire_dict(self) -> dict[str, OverrideValue]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ParsedScenarioField(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: OverrideKey = Field(description="Override key from the projection schema.")
    label: str = Field(description="Human-readable field name.", examples=["Retirement Age"])
    value: OverrideValue = Field(description="Extracted value.", examples=[62])
    display_value: str = Field(
        alias="displayValue", description="Human-readable value.", examples=["Age 62"]
    )
    confidence: float = Field(ge=0, le=1, description="Extraction certainty.", examples=[0.9])


class ScenarioConfidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: float = Field(ge=0, le=1, description="Minimum of the per-field confidences.")
    fields: dict[OverrideKey, ConfidenceScore] = Field(
        default_factory=dict, description="Confidence per extracted field key."
    )


class ParsedScenario(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    overrides: ProjectionOverrides
    fields: list[ParsedScenarioField]
    confidence: ScenarioConfidence
    original_query: str = Field(alias="originalQuery")

    @model_validator(mode="after")
    def validate_field_key_alignment(self) -> "ParsedScenario":
        field_keys = [field.key for field in self.fields]
        if len(field_keys) != len(set(field_keys)):
            raise ValueError("fields must not repeat an override key")
        if set(self.confidence.fields) != set(field_keys):
            raise ValueError("confidence.fields keys must match fields keys exactly")
        override_keys = {OverrideKey(key) for key in self.overrides.as_wire_dict()}
        if not override_keys <= set(field_keys):
            raise ValueError("overrides must not contain keys absent from fields")
        return self


class ScenarioParseResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    data: Optional[ParsedScenario] = None
    error: Optional[str] = None
    error_code: Optional[ScenarioParseErrorCode] = Field(default=None, alias="errorCode")

    @model_validator(mode="after")
    def validate_outcome_shape(self) -> "ScenarioParseResponse":
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful response must carry data and no error")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("failed response must carry an error and no data")
        return self

    @classmethod
    def succeeded(cls, data: ParsedScenario) -> "ScenarioParseResponse":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error_code: ScenarioParseErrorCode, error: str) -> "ScenarioParseResponse":
        return cls(success=False, error=error, error_code=error_code)


def format_display_value(key: OverrideKey, value: OverrideValue) -> str:
    if isinstance(value, str):
        return value
    if key in PERCENT_KEYS:
        return f"{value * 100:.1f}%"
    if key in AGE_KEYS:
        return f"Age {value}"
    if key == OverrideKey.ANNUAL_HEALTHCARE_COSTS:
        return f"${value:,.0f}/year"
    return str(value)
