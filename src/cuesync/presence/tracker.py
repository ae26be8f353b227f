"""Presence of collaborators."""

from __future__ import annotations

import logging

from cuesync.clock import Clock, wall_clock
from cuesync.config import settings
from cuesync.models.presence import PresenceEntry, PresenceStatus

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Set of known collaborators and their last activity.

    Staleness is a read-time filter: entries older than the TTL are hidden
    from ``active_entries`` but kept, so a reconnecting user keeps their
    history.
    """

    def __init__(self, ttl: float | None = None, clock: Clock | None = None) -> None:
        self._ttl = settings.presence_ttl if ttl is None else ttl
        self._clock = clock or wall_clock
        self._entries: dict[str, PresenceEntry] = {}
        self._remote_clock: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def upsert(self, entry: PresenceEntry) -> PresenceEntry:
        """Insert or replace the entry for ``entry.user_id``; unknown users join."""
        if entry.user_id not in self._entries:
            logger.info("Collaborator joined: %s (%s)", entry.name, entry.user_id)
        stored = entry.model_copy(update={"last_seen": self._clock()})
        self._entries[entry.user_id] = stored
        return stored.model_copy()

    def apply_remote(self, entry: PresenceEntry, timestamp: float) -> bool:
        """Last-write-wins update from a remote presence event.

        ``last_seen`` becomes the event timestamp unless later activity
        already moved it further. Returns False for an event older than the
        last one applied for that user.
        """
        previous = self._remote_clock.get(entry.user_id)
        if previous is not None and timestamp < previous:
            return False
        self._remote_clock[entry.user_id] = timestamp
        current = self._entries.get(entry.user_id)
        if current is None:
            logger.info("Collaborator joined: %s (%s)", entry.name, entry.user_id)
            last_seen = timestamp
        else:
            last_seen = max(timestamp, current.last_seen)
        self._entries[entry.user_id] = entry.model_copy(update={"last_seen": last_seen})
        return True

    def touch_remote(self, user_id: str, timestamp: float) -> bool:
        """Move ``last_seen`` forward to the time of a remote user's activity.

        Only known users are refreshed and ``last_seen`` never moves back.
        """
        entry = self._entries.get(user_id)
        if entry is None or timestamp <= entry.last_seen:
            return False
        self._entries[user_id] = entry.model_copy(update={"last_seen": timestamp})
        return True

    def remove_remote(self, user_id: str, timestamp: float) -> bool:
        """Drop a user who announced leaving.

        Shares the last-write-wins clock of ``apply_remote``, so a presence
        event older than the departure does not bring the user back.
        """
        previous = self._remote_clock.get(user_id)
        if previous is not None and timestamp < previous:
            return False
        self._remote_clock[user_id] = timestamp
        entry = self._entries.pop(user_id, None)
        if entry is None:
            return False
        logger.info("Collaborator left: %s (%s)", entry.name, user_id)
        return True

    def set_status(self, user_id: str, status: PresenceStatus) -> bool:
        """Update the status of a known user, refreshing ``last_seen``."""
        entry = self._entries.get(user_id)
        if entry is None:
            return False
        self._entries[user_id] = entry.model_copy(
            update={"status": status, "last_seen": self._clock()}
        )
        return True

    def touch(self, user_id: str) -> bool:
        """Refresh ``last_seen`` without changing anything else."""
        entry = self._entries.get(user_id)
        if entry is None:
            return False
        self._entries[user_id] = entry.model_copy(update={"last_seen": self._clock()})
        return True

    def get(self, user_id: str) -> PresenceEntry | None:
        entry = self._entries.get(user_id)
        return entry.model_copy() if entry else None

    def active_entries(self, now: float | None = None) -> list[PresenceEntry]:
        """Entries seen within the TTL, most recent first."""
        now = self._clock() if now is None else now
        active = [e for e in self._entries.values() if now - e.last_seen <= self._ttl]
        active.sort(key=lambda e: e.last_seen, reverse=True)
        return [e.model_copy() for e in active]

    def active_count(self, now: float | None = None) -> int:
        return len(self.active_entries(now))

    def viewers_of(self, asset_id: str, now: float | None = None) -> list[PresenceEntry]:
        """Active entries currently looking at ``asset_id``."""
        return [e for e in self.active_entries(now) if e.current_asset_id == asset_id]
