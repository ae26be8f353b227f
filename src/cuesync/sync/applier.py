"""Idempotent application of inbound sync events to local state."""

from __future__ import annotations

import logging

import pydantic

from cuesync.correlation.comments import CommentStore
from cuesync.correlation.cursors import CursorTracker
from cuesync.errors import ValidationError
from cuesync.models.comment import Comment
from cuesync.models.presence import CursorSample, PresenceEntry
from cuesync.models.sync import PlaybackSyncPayload, SyncEvent, SyncEventType
from cuesync.playback.controller import PlaybackController
from cuesync.presence.tracker import PresenceTracker

logger = logging.getLogger(__name__)


class SyncEventApplier:
    """Subscriber that folds remote events into the local components.

    Applying the same event twice has no further effect:

    - comment_added dedupes by comment id, comment_deleted is a no-op once
      the comment is gone
    - playback_sync is last-write-wins per origin on its logical clock and
      never overrides a more recent local transport action
    - cursor_moved and presence_changed are last-write-wins per origin
    - user_left drops the origin's presence entry and cursor

    Any accepted event also counts as activity of its origin and refreshes
    that user's presence. Events echoed back from the local user are
    ignored.
    """

    def __init__(
        self,
        *,
        local_user_id: str,
        comments: CommentStore,
        presence: PresenceTracker,
        cursors: CursorTracker,
        controller: PlaybackController | None = None,
    ) -> None:
        self._local_user_id = local_user_id
        self._comments = comments
        self._presence = presence
        self._cursors = cursors
        self._controller = controller
        self._playback_clock: dict[str, float] = {}
        self._last_local_action = float("-inf")
        self.follow_playback = controller is not None

    def note_local_action(self, timestamp: float) -> None:
        """Record a local transport action; older remote syncs lose to it."""
        self._last_local_action = max(self._last_local_action, timestamp)

    def __call__(self, event: SyncEvent) -> None:
        self.apply(event)

    def apply(self, event: SyncEvent) -> bool:
        """Apply ``event``. Returns True when local state changed."""
        if event.origin_user_id == self._local_user_id:
            return False
        handlers = {
            SyncEventType.COMMENT_ADDED: self._apply_comment_added,
            SyncEventType.COMMENT_DELETED: self._apply_comment_deleted,
            SyncEventType.PLAYBACK_SYNC: self._apply_playback_sync,
            SyncEventType.CURSOR_MOVED: self._apply_cursor_moved,
            SyncEventType.PRESENCE_CHANGED: self._apply_presence_changed,
            SyncEventType.USER_LEFT: self._apply_user_left,
        }
        try:
            changed = handlers[event.type](event)
        except (pydantic.ValidationError, KeyError) as exc:
            logger.warning("Ignoring malformed %s event %s: %s", event.type.value, event.id, exc)
            return False
        if changed:
            self._presence.touch_remote(event.origin_user_id, event.timestamp)
        return changed

    def _apply_comment_added(self, event: SyncEvent) -> bool:
        comment = Comment.model_validate(event.payload["comment"])
        try:
            return self._comments.add(comment)
        except ValidationError as exc:
            logger.warning("Rejected remote comment %s: %s", comment.id, exc)
            return False

    def _apply_comment_deleted(self, event: SyncEvent) -> bool:
        return bool(self._comments.remove(event.payload["comment_id"]))

    def _apply_playback_sync(self, event: SyncEvent) -> bool:
        origin = event.origin_user_id
        last = self._playback_clock.get(origin)
        if last is not None and event.timestamp <= last:
            logger.debug("Stale playback_sync from %s ignored", origin)
            return False
        payload = PlaybackSyncPayload.model_validate(event.payload)
        self._playback_clock[origin] = event.timestamp
        self._presence.touch_remote(origin, event.timestamp)

        if event.timestamp < self._last_local_action:
            logger.debug("playback_sync from %s predates local action", origin)
            return False
        if not self.follow_playback or self._controller is None:
            return False

        self._controller.seek(payload.current_time)
        self._controller.set_rate(payload.rate)
        if payload.is_playing:
            self._controller.play()
        else:
            self._controller.pause()
        return True

    def _apply_cursor_moved(self, event: SyncEvent) -> bool:
        sample = CursorSample.model_validate(event.payload)
        if sample.user_id != event.origin_user_id:
            return False
        return self._cursors.update(sample)

    def _apply_presence_changed(self, event: SyncEvent) -> bool:
        entry = PresenceEntry.model_validate(event.payload["entry"])
        if entry.user_id != event.origin_user_id:
            return False
        return self._presence.apply_remote(entry, event.timestamp)

    def _apply_user_left(self, event: SyncEvent) -> bool:
        user_id = event.payload["user_id"]
        if user_id != event.origin_user_id:
            return False
        self._cursors.remove(user_id)
        return self._presence.remove_remote(user_id, event.timestamp)
