from src.core.narrative.cache import CachedSummary, SummaryCache
from src.core.narrative.regeneration import RegenerationAllowance, RegenerationLimiter
from src.core.narrative.sections import (
    PlanSummarySections,
    build_summary_context,
    lifestyle_label,
    validate_summary_sections,
)
from src.core.narrative.service import NarrativeSummaryOutcome, NarrativeSummaryService
from src.core.narrative.validation import (
    MissingSectionError,
    ResponseValidator,
    ValidationResult,
    validate_sections,
    validate_text,
)

__all__ = [
    "CachedSummary",
    "MissingSectionError",
    "NarrativeSummaryOutcome",
    "NarrativeSummaryService",
    "PlanSummarySections",
    "RegenerationAllowance",
    "RegenerationLimiter",
    "ResponseValidator",
    "SummaryCache",
    "ValidationResult",
    "build_summary_context",
    "lifestyle_label",
    "validate_sections",
    "validate_summary_sections",
    "validate_text",
]
