from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.core.narrative.policies import PolicyName
from src.core.scenarios import OverrideKey

_PROJECTION_INPUT_EXAMPLE = {
    "currentAge": 45,
    "retirementAge": 65,
    "maxAge": 90,
    "expectedReturn": 0.07,
    "inflationRate": 0.03,
    "balancesByType": {"taxDeferred": 250000, "taxFree": 40000, "taxable": 60000},
}


class CacheKeyRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"projectionInput": _PROJECTION_INPUT_EXAMPLE}},
    )

    projection_input: Any = Field(
        alias="projectionInput",
        description="Opaque JSON projection input owned by the projection engine.",
    )


class CacheKeyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cache_key: str = Field(
        alias="cacheKey",
        description="64-character lowercase SHA-256 hex digest.",
        examples=["9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08"],
    )
    version: str = Field(description="First eight characters of the cache key.")


class NarrativeValidationRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "sections": {
                    "whereYouStand": "Your plan is on track.",
                    "disclaimer": "This is not financial advice.",
                },
                "exempt": ["disclaimer"],
            }
        }
    )

    text: Optional[str] = Field(default=None, description="Single text block to scan.")
    sections: Optional[dict[str, Optional[str]]] = Field(
        default=None, description="Named text sections scanned together."
    )
    exempt: list[str] = Field(default_factory=list, description="Section names never scanned.")
    required: list[str] = Field(
        default_factory=list, description="Section names that must be present."
    )
    policy: Optional[list[str]] = Field(
        default=None,
        description="Banned phrases overriding the configured default policy for this request.",
    )
    policy_name: Optional[PolicyName] = Field(
        default=None,
        alias="policyName",
        description="Built-in phrase list to validate against instead of the default policy.",
    )

    @model_validator(mode="after")
    def validate_single_payload(self) -> "NarrativeValidationRequest":
        if (self.text is None) == (self.sections is None):
            raise ValueError("exactly one of text or sections must be provided")
        if self.policy is not None and self.policy_name is not None:
            raise ValueError("policy and policyName are mutually exclusive")
        return self


class ScenarioParseRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {"query": "bump my savings rate to 20% and retire at 62"}
        },
    )

    query: str = Field(description="Free-text what-if question.")
    schema_keys: Optional[list[OverrideKey]] = Field(
        default=None,
        alias="schemaKeys",
        description="Subset of override keys to extract; all keys when omitted.",
    )


class PlanSummaryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    projection_input: Any = Field(alias="projectionInput")
    context: Optional[dict[str, Any]] = Field(
        default=None, description="Narrative context sent to the provider instead of raw input."
    )
    regenerate: bool = Field(default=False, description="Bypass the cache and regenerate.")
    user_id: str = Field(default="anonymous", alias="userId")
