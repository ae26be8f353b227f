"""Live cursor samples of collaborators."""

from __future__ import annotations

from cuesync.clock import Clock, wall_clock
from cuesync.config import settings
from cuesync.models.presence import CursorSample


class CursorTracker:
    """Keeps the most recent cursor sample per user.

    Samples are never pruned on write; staleness is filtered when reading.
    """

    def __init__(self, ttl: float | None = None, clock: Clock | None = None) -> None:
        self._ttl = settings.cursor_ttl if ttl is None else ttl
        self._clock = clock or wall_clock
        self._latest: dict[str, CursorSample] = {}

    def update(self, sample: CursorSample) -> bool:
        """Store ``sample`` unless a newer one from the same user is held."""
        current = self._latest.get(sample.user_id)
        if current is not None and current.timestamp > sample.timestamp:
            return False
        self._latest[sample.user_id] = sample
        return True

    def latest(self, user_id: str) -> CursorSample | None:
        return self._latest.get(user_id)

    def remove(self, user_id: str) -> None:
        self._latest.pop(user_id, None)

    def visible(self, now: float | None = None, exclude_user_id: str | None = None) -> list[CursorSample]:
        """Samples younger than the TTL, newest first."""
        now = self._clock() if now is None else now
        fresh = [
            s
            for s in self._latest.values()
            if s.user_id != exclude_user_id and now - s.timestamp < self._ttl
        ]
        return sorted(fresh, key=lambda s: s.timestamp, reverse=True)
