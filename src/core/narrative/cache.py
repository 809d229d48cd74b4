from datetime import datetime
from typing import Optional, Protocol

from pydantic import BaseModel, Field

from src.core.narrative.sections import PlanSummarySections


class CachedSummary(BaseModel):
    cache_key: str = Field(description="SHA-256 fingerprint of the projection input.")
    sections: PlanSummarySections
    model: str = Field(description="Model that generated the narrative.", examples=["gpt-4o-mini"])
    generation_time_ms: Optional[int] = Field(default=None, ge=0)
    created_at: datetime


class SummaryCache(Protocol):
    def get(self, *, cache_key: str) -> Optional[CachedSummary]: ...

    def put(self, summary: CachedSummary) -> None: ...
