import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.narrative_config import (
    get_regeneration_limiter,
    get_response_validator,
    get_summary_service,
)
from src.api.observability import record_summary_outcome
from src.api.request_models import (
    CacheKeyRequest,
    CacheKeyResponse,
    NarrativeValidationRequest,
    PlanSummaryRequest,
)
from src.api.routers.narrative_http_errors import raise_narrative_http_exception
from src.core.common.canonical import SerializationError, cache_key_version, compute_cache_key
from src.core.narrative import (
    MissingSectionError,
    NarrativeSummaryOutcome,
    NarrativeSummaryService,
    RegenerationLimiter,
    ResponseValidator,
    ValidationResult,
)
from src.core.narrative.policies import NAMED_POLICIES

router = APIRouter(tags=["Narrative Integrity"])
logger = logging.getLogger(__name__)


@router.post(
    "/narrative/cache-key",
    response_model=CacheKeyResponse,
    status_code=status.HTTP_200_OK,
    summary="Compute Projection Cache Key",
    description=(
        "Returns the deterministic SHA-256 fingerprint of a projection input. "
        "Top-level key order does not affect the result."
    ),
    responses={422: {"description": "Projection input is not JSON serializable."}},
)
def compute_projection_cache_key(request: CacheKeyRequest) -> CacheKeyResponse:
    try:
        cache_key = compute_cache_key(request.projection_input)
    except SerializationError as exc:
        raise_narrative_http_exception(exc)
    return CacheKeyResponse(cache_key=cache_key, version=cache_key_version(cache_key))


@router.post(
    "/narrative/validate",
    response_model=ValidationResult,
    status_code=status.HTTP_200_OK,
    summary="Validate Narrative Text",
    description=(
        "Scans text or named sections for banned phrases (case-insensitive). "
        "Exempt sections are never scanned; missing required sections are rejected."
    ),
    responses={422: {"description": "Missing required section or invalid payload."}},
)
def validate_narrative(
    request: NarrativeValidationRequest,
    default_validator: Annotated[ResponseValidator, Depends(get_response_validator)],
) -> ValidationResult:
    try:
        if request.policy is not None:
            validator = ResponseValidator(request.policy)
        elif request.policy_name is not None:
            validator = ResponseValidator(NAMED_POLICIES[request.policy_name])
        else:
            validator = default_validator
        if request.text is not None:
            return validator.validate_text(request.text)
        return validator.validate_sections(
            request.sections or {},
            exempt=request.exempt,
            required=request.required,
        )
    except (MissingSectionError, ValueError, TypeError) as exc:
        raise_narrative_http_exception(exc)


@router.post(
    "/narrative/plan-summary",
    response_model=NarrativeSummaryOutcome,
    status_code=status.HTTP_200_OK,
    summary="Get or Generate Plan Summary",
    description=(
        "Returns the cached narrative for the projection input fingerprint, or generates, "
        "validates, and caches a new one. Rejected narratives are never returned."
    ),
    responses={
        422: {"description": "Projection input is not JSON serializable."},
        429: {"description": "Daily regeneration limit exceeded."},
        503: {"description": "AI provider is not configured."},
    },
)
async def plan_summary(
    request: PlanSummaryRequest,
    service: Annotated[Optional[NarrativeSummaryService], Depends(get_summary_service)],
    limiter: Annotated[RegenerationLimiter, Depends(get_regeneration_limiter)],
) -> NarrativeSummaryOutcome:
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI_PROVIDER_NOT_CONFIGURED",
        )
    if request.regenerate:
        allowance = limiter.acquire(user_id=request.user_id)
        if not allowance.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"REGENERATION_LIMIT_EXCEEDED: resets at {allowance.reset_at.isoformat()}",
            )

    try:
        outcome = await service.summarize(
            request.projection_input,
            context=request.context,
            regenerate=request.regenerate,
        )
    except SerializationError as exc:
        if request.regenerate:
            limiter.release(user_id=request.user_id)
        raise_narrative_http_exception(exc)

    record_summary_outcome(outcome.status)
    if request.regenerate and outcome.status != "GENERATED":
        limiter.release(user_id=request.user_id)
    if not outcome.usable:
        logger.warning(
            "Plan summary not usable. status=%s reason=%s", outcome.status, outcome.reason
        )
    return outcome
