from collections import OrderedDict
from copy import deepcopy
from threading import Lock
from typing import Optional

from src.core.narrative.cache import CachedSummary, SummaryCache

DEFAULT_SUMMARY_CACHE_MAX_ENTRIES = 1000


class InMemorySummaryCache(SummaryCache):
    def __init__(self, *, max_entries: int = DEFAULT_SUMMARY_CACHE_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._lock = Lock()
        self._max_entries = max_entries
        self._summaries: "OrderedDict[str, CachedSummary]" = OrderedDict()

    def get(self, *, cache_key: str) -> Optional[CachedSummary]:
        with self._lock:
            summary = self._summaries.get(cache_key)
            if summary is None:
                return None
            self._summaries.move_to_end(cache_key)
            return deepcopy(summary)

    def put(self, summary: CachedSummary) -> None:
        with self._lock:
            self._summaries[summary.cache_key] = deepcopy(summary)
            self._summaries.move_to_end(summary.cache_key)
            while len(self._summaries) > self._max_entries:
                self._summaries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._summaries)
