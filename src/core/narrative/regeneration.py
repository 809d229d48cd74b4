from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable

from pydantic import BaseModel

DEFAULT_REGENERATIONS_PER_DAY = 10


class RegenerationAllowance(BaseModel):
    allowed: bool
    remaining: int
    reset_at: datetime


def _next_utc_midnight(now: datetime) -> datetime:
    midnight = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(days=1)


class RegenerationLimiter:
    """
    Per-user daily cap on forced summary regenerations, reset at UTC midnight.

    `acquire` reserves a slot atomically before the provider call; `release`
    hands it back when the regeneration did not produce a summary.
    """

    def __init__(
        self,
        *,
        max_per_day: int = DEFAULT_REGENERATIONS_PER_DAY,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._max_per_day = max_per_day
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[str, tuple[int, datetime]] = {}

    def acquire(self, *, user_id: str) -> RegenerationAllowance:
        now = self._clock()
        with self._lock:
            self._prune_expired(now)
            count, reset_at = self._entries.get(user_id, (0, _next_utc_midnight(now)))
            if count >= self._max_per_day:
                return RegenerationAllowance(allowed=False, remaining=0, reset_at=reset_at)
            self._entries[user_id] = (count + 1, reset_at)
            return RegenerationAllowance(
                allowed=True,
                remaining=self._max_per_day - count - 1,
                reset_at=reset_at,
            )

    def release(self, *, user_id: str) -> None:
        now = self._clock()
        with self._lock:
            self._prune_expired(now)
            entry = self._entries.get(user_id)
            if entry is None:
                return
            count, reset_at = entry
            if count <= 1:
                del self._entries[user_id]
            else:
                self._entries[user_id] = (count - 1, reset_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _prune_expired(self, now: datetime) -> None:
        expired = [key for key, (_, reset_at) in self._entries.items() if reset_at <= now]
        for key in expired:
            del self._entries[key]
