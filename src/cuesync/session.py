"""Review session: one reviewer working on one asset."""

from __future__ import annotations

import logging

from cuesync.annotation.overlay import AnnotationOverlay
from cuesync.clock import Clock, wall_clock
from cuesync.correlation.comments import CommentStore
from cuesync.correlation.cursors import CursorTracker
from cuesync.correlation.timeline import MarkerGroup, quantize, time_from_pointer
from cuesync.errors import ChannelError, ChannelErrorKind, ValidationError, ValidationErrorKind
from cuesync.export.comments import export_csv
from cuesync.models.annotation import AnnotationStroke
from cuesync.models.asset import Asset
from cuesync.models.comment import SENTINEL_GENERAL, Attachment, Comment
from cuesync.models.presence import CursorSample, Identity, PresenceEntry, PresenceStatus
from cuesync.models.sync import PlaybackSyncPayload, SyncEvent, SyncEventType
from cuesync.observers import Subscription
from cuesync.playback.controller import PlaybackController
from cuesync.presence.tracker import PresenceTracker
from cuesync.services.interfaces import AssetStore, MediaBackend
from cuesync.sync.applier import SyncEventApplier
from cuesync.sync.channel import SyncChannel
from cuesync.sync.transport import Transport

logger = logging.getLogger(__name__)

# Event types worth re-publishing after a reconnect
_DURABLE_EVENTS = frozenset({SyncEventType.COMMENT_ADDED, SyncEventType.COMMENT_DELETED})


class ReviewSession:
    """Wires the review components together for a single reviewer.

    The session owns the playback controller, the annotation overlay, the
    comment forest, presence and cursor trackers and the sync channel.
    Local actions update local state first and are then published; a
    failed publish never undoes the local change. Comment events that
    could not be published are kept in ``pending_events`` until
    ``republish_pending`` succeeds.
    """

    def __init__(
        self,
        identity: Identity,
        asset: Asset,
        *,
        store: AssetStore,
        backend: MediaBackend,
        transport: Transport,
        clock: Clock | None = None,
        handshake_timeout: float | None = None,
        metadata_timeout: float | None = None,
    ) -> None:
        self.identity = identity
        self.asset = asset
        self._store = store
        self._clock = clock or wall_clock
        self._last_timestamp = float("-inf")

        self.controller = PlaybackController(backend, metadata_timeout=metadata_timeout)
        self.overlay = AnnotationOverlay(self.controller, color=identity.color)
        self.comments = CommentStore()
        self.cursors = CursorTracker(clock=self._clock)
        self.presence = PresenceTracker(clock=self._clock)
        self.channel = SyncChannel(transport, handshake_timeout=handshake_timeout)
        self.applier = SyncEventApplier(
            local_user_id=identity.user_id,
            comments=self.comments,
            presence=self.presence,
            cursors=self.cursors,
            controller=self.controller,
        )

        self.pending_events: list[SyncEvent] = []
        self.last_publish_error: ChannelErrorKind | None = None
        self._subscription: Subscription | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> bool:
        """Load comments and media, then join the channel.

        Returns:
            True when the channel connected. A False result leaves the
            session usable offline with ``presence_known`` False.
        """
        logger.info("Opening review of %s as %s", self.asset.id, self.identity.user_id)
        for comment in await self._store.list_comments(self.asset.id):
            self.comments.add(comment)

        if self._subscription is None:
            self._subscription = self.channel.subscribe(self.applier)
        self.presence.upsert(
            PresenceEntry.for_identity(self.identity, current_asset_id=self.asset.id)
        )

        if self.asset.is_timed:
            await self.controller.load(self.asset.source)

        return await self.connect()

    async def connect(self) -> bool:
        """(Re)connect the channel and announce our presence."""
        if not await self.channel.connect():
            logger.warning(
                "Review of %s continues offline (%s)",
                self.asset.id,
                self.channel.last_error.value if self.channel.last_error else "unknown",
            )
            return False
        await self._announce_presence()
        return True

    async def close(self) -> None:
        if self.channel.is_connected:
            farewell = SyncEvent.user_left(self.identity.user_id, self._next_timestamp())
            await self._broadcast(farewell)
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        await self.channel.disconnect()
        self.controller.close()
        logger.info("Closed review of %s", self.asset.id)

    async def __aenter__(self) -> ReviewSession:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def presence_known(self) -> bool:
        """False while disconnected: remote presence may be stale."""
        return self.channel.is_connected

    @property
    def frame_rate(self) -> float | None:
        """Frame rate of the asset record or the probed stream; None if unknown."""
        return self.asset.frame_rate or self.controller.state.frame_rate

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def add_comment(
        self,
        text: str,
        *,
        attach_time: bool = True,
        parent_id: str | None = None,
        attachments: list[Attachment] | None = None,
        is_internal: bool = False,
    ) -> Comment:
        """Create a comment, keep it locally and publish it.

        Committed drawings are attached to top-level comments, which then
        take the time the first stroke is bound to. Otherwise the comment
        is bound to the quantized playhead when ``attach_time`` is set and
        the asset is timed, and is a general comment if not.

        Raises:
            ValidationError: INVALID_PARENT when ``parent_id`` does not
                name a top-level comment
        """
        strokes: list[AnnotationStroke] = []
        if parent_id is not None:
            self.comments.validate_parent(parent_id)
            timestamp = SENTINEL_GENERAL
        else:
            strokes = self.overlay.take_strokes()
            if strokes:
                timestamp = strokes[0].bound_timestamp
            elif attach_time and self.asset.is_timed:
                timestamp = quantize(self.controller.current_time, self.frame_rate)
            else:
                timestamp = SENTINEL_GENERAL

        comment = Comment(
            asset_id=self.asset.id,
            timestamp=timestamp,
            text=text,
            author_id=self.identity.user_id,
            author_name=self.identity.name,
            parent_id=parent_id,
            attachments=attachments or [],
            is_internal=is_internal,
            has_drawing=bool(strokes),
            strokes=strokes,
        )
        stored = await self._store.create_comment(comment)
        self.comments.add(stored)
        await self._broadcast(
            SyncEvent.comment_added(stored, self.identity.user_id, self._next_timestamp())
        )
        return stored

    async def reply(self, parent_id: str, text: str, **kwargs) -> Comment:
        return await self.add_comment(text, parent_id=parent_id, attach_time=False, **kwargs)

    async def delete_comment(self, comment_id: str) -> list[str]:
        """Delete a comment and its replies; returns the removed ids."""
        await self._store.delete_comment(comment_id)
        removed = self.comments.remove(comment_id)
        if removed:
            await self._broadcast(
                SyncEvent.comment_deleted(comment_id, self.identity.user_id, self._next_timestamp())
            )
        return removed

    def commit_drawing(self) -> AnnotationStroke:
        """Commit the stroke in progress at the session's frame rate."""
        return self.overlay.commit(self.frame_rate)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def _broadcast(self, event: SyncEvent) -> bool:
        self.presence.touch(self.identity.user_id)
        try:
            await self.channel.publish(event)
        except ChannelError as exc:
            self.last_publish_error = exc.kind
            if event.type in _DURABLE_EVENTS:
                self.pending_events.append(event)
                logger.info("Queued %s for re-publish: %s", event.type.value, exc)
            else:
                logger.debug("Dropped %s: %s", event.type.value, exc)
            return False
        self.last_publish_error = None
        return True

    async def republish_pending(self) -> int:
        """Publish queued comment events in order; returns how many went out.

        Stops at the first failure, leaving the rest queued.
        """
        sent = 0
        while self.pending_events:
            event = self.pending_events[0]
            try:
                await self.channel.publish(event)
            except ChannelError as exc:
                self.last_publish_error = exc.kind
                break
            self.pending_events.pop(0)
            sent += 1
        if sent:
            logger.info("Re-published %d queued event(s)", sent)
        return sent

    def _next_timestamp(self) -> float:
        # Logical clock: wall time, forced strictly increasing per origin
        timestamp = max(self._clock(), self._last_timestamp + 1e-6)
        self._last_timestamp = timestamp
        return timestamp

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    async def seek(self, time: float, *, broadcast: bool = False) -> float:
        timestamp = self._next_timestamp()
        self.applier.note_local_action(timestamp)
        position = self.controller.seek(time)
        if broadcast:
            await self.sync_playback(timestamp)
        return position

    async def play(self, *, broadcast: bool = False) -> bool:
        timestamp = self._next_timestamp()
        self.applier.note_local_action(timestamp)
        started = self.controller.play()
        if broadcast:
            await self.sync_playback(timestamp)
        return started

    async def pause(self, *, broadcast: bool = False) -> bool:
        timestamp = self._next_timestamp()
        self.applier.note_local_action(timestamp)
        paused = self.controller.pause()
        if broadcast:
            await self.sync_playback(timestamp)
        return paused

    async def sync_playback(self, timestamp: float | None = None) -> bool:
        """Share the local transport position with the other reviewers."""
        state = self.controller.state
        payload = PlaybackSyncPayload(
            current_time=state.current_time, is_playing=state.is_playing, rate=state.rate
        )
        event = SyncEvent.playback_sync(
            payload,
            self.identity.user_id,
            self._next_timestamp() if timestamp is None else timestamp,
        )
        return await self._broadcast(event)

    async def seek_to_comment(self, comment_id: str) -> float:
        """Jump to the time a comment is bound to; general comments don't move.

        Raises:
            ValidationError: INVALID_VALUE for an unknown comment
        """
        comment = self.comments.get(comment_id)
        if comment is None:
            raise ValidationError(
                ValidationErrorKind.INVALID_VALUE, f"Unknown comment: {comment_id}"
            )
        if comment.is_general:
            return self.controller.current_time
        return await self.seek(comment.timestamp)

    async def seek_from_pointer(self, px: float, timeline_width_px: float) -> float:
        return await self.seek(time_from_pointer(px, timeline_width_px, self.controller.duration))

    # ------------------------------------------------------------------
    # Presence and cursors
    # ------------------------------------------------------------------

    async def move_cursor(self, x: float, y: float) -> CursorSample:
        sample = CursorSample(
            user_id=self.identity.user_id,
            x=x,
            y=y,
            color=self.identity.color,
            name=self.identity.name,
            timestamp=self._next_timestamp(),
        )
        self.cursors.update(sample)
        await self._broadcast(SyncEvent.cursor_moved(sample))
        return sample

    async def set_status(self, status: PresenceStatus) -> bool:
        if not self.presence.set_status(self.identity.user_id, status):
            return False
        return await self._announce_presence()

    async def _announce_presence(self) -> bool:
        entry = self.presence.get(self.identity.user_id)
        if entry is None:
            return False
        return await self._broadcast(SyncEvent.presence_changed(entry, self._next_timestamp()))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def markers(self, window: float | None = None) -> list[MarkerGroup]:
        return self.comments.markers(self.controller.duration, window)

    def visible_cursors(self, now: float | None = None) -> list[CursorSample]:
        return self.cursors.visible(now, exclude_user_id=self.identity.user_id)

    def active_users(self, now: float | None = None) -> list[PresenceEntry]:
        return self.presence.active_entries(now)

    def export_csv(self) -> str:
        return export_csv(self.comments)
