"""Comment forest, ordering and filtering."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from cuesync.correlation.timeline import MarkerGroup, markers_for
from cuesync.errors import ValidationError, ValidationErrorKind
from cuesync.models.comment import Comment

logger = logging.getLogger(__name__)


class SortOption(str, Enum):
    """Orderings offered by the comment list."""

    TIMECODE = "timecode"
    OLDEST = "oldest"
    NEWEST = "newest"
    COMMENTER = "commenter"


def comment_sort_key(comment: Comment) -> tuple[int, float, float, str]:
    """Timestamped first by time, general comments last, then creation time."""
    if comment.is_general:
        return (1, 0.0, comment.created_at.timestamp(), comment.id)
    return (0, comment.timestamp, comment.created_at.timestamp(), comment.id)


def sort_comments(comments: Iterable[Comment]) -> list[Comment]:
    """Sort for the full list view (timecode order)."""
    return sorted(comments, key=comment_sort_key)


def sort_by(comments: Iterable[Comment], option: SortOption) -> list[Comment]:
    """Sort with one of the list-view options."""
    if option is SortOption.OLDEST:
        return sorted(comments, key=lambda c: (c.created_at.timestamp(), c.id))
    if option is SortOption.NEWEST:
        return sorted(comments, key=lambda c: (-c.created_at.timestamp(), c.id))
    if option is SortOption.COMMENTER:
        return sorted(
            comments,
            key=lambda c: ((c.author_name or c.author_id).casefold(), comment_sort_key(c)),
        )
    return sort_comments(comments)


def thread_order(comments: Iterable[Comment]) -> list[Comment]:
    """Flatten a forest: each top-level comment followed by its replies.

    Top-level comments are in timecode order, replies in creation order.
    Replies whose parent is absent come last.
    """
    items = list(comments)
    top_ids = {c.id for c in items if not c.is_reply}
    replies: dict[str, list[Comment]] = {}
    orphans: list[Comment] = []
    for c in items:
        if not c.is_reply:
            continue
        if c.parent_id in top_ids:
            replies.setdefault(c.parent_id, []).append(c)  # type: ignore[arg-type]
        else:
            orphans.append(c)

    ordered: list[Comment] = []
    for parent in sort_comments(c for c in items if not c.is_reply):
        ordered.append(parent)
        ordered.extend(sort_by(replies.get(parent.id, []), SortOption.OLDEST))
    ordered.extend(sort_by(orphans, SortOption.OLDEST))
    return ordered


@dataclass
class CommentFilter:
    """Comment list filter. Empty criteria match everything."""

    search: str = ""
    author_id: str | None = None
    with_annotations: bool = False
    with_attachments: bool = False
    internal: bool | None = None

    def matches(self, comment: Comment) -> bool:
        if self.search:
            needle = self.search.casefold()
            haystack = f"{comment.text}\n{comment.author_name}".casefold()
            if needle not in haystack:
                return False
        if self.author_id is not None and comment.author_id != self.author_id:
            return False
        if self.with_annotations and not comment.has_drawing:
            return False
        if self.with_attachments and not comment.attachments:
            return False
        if self.internal is not None and comment.is_internal != self.internal:
            return False
        return True

    def apply(self, comments: Iterable[Comment]) -> list[Comment]:
        return [c for c in comments if self.matches(c)]


class CommentStore:
    """Owner of the comment forest for one asset.

    Adding is idempotent by comment id. Replies nest one level deep:
    a reply may not point at another reply.
    """

    def __init__(self, comments: Iterable[Comment] | None = None) -> None:
        self._comments: dict[str, Comment] = {}
        for comment in comments or []:
            self.add(comment)

    def __len__(self) -> int:
        return len(self._comments)

    def __contains__(self, comment_id: object) -> bool:
        return comment_id in self._comments

    def __iter__(self) -> Iterator[Comment]:
        return iter(list(self._comments.values()))

    def get(self, comment_id: str) -> Comment | None:
        return self._comments.get(comment_id)

    def validate_parent(self, parent_id: str) -> Comment:
        """Return the parent for a new reply.

        Raises:
            ValidationError: If the parent is unknown or is itself a reply
        """
        parent = self._comments.get(parent_id)
        if parent is None:
            raise ValidationError(
                ValidationErrorKind.INVALID_PARENT, f"Unknown parent comment: {parent_id}"
            )
        if parent.is_reply:
            raise ValidationError(
                ValidationErrorKind.INVALID_PARENT,
                f"Comment {parent_id} is a reply; replies nest one level only",
            )
        return parent

    def add(self, comment: Comment) -> bool:
        """Insert a comment. Returns False if the id is already present.

        Raises:
            ValidationError: If the comment replies to a reply
        """
        if comment.id in self._comments:
            return False
        if comment.parent_id is not None:
            parent = self._comments.get(comment.parent_id)
            if parent is not None and parent.is_reply:
                raise ValidationError(
                    ValidationErrorKind.INVALID_PARENT,
                    f"Comment {comment.parent_id} is a reply; replies nest one level only",
                )
        self._comments[comment.id] = comment
        return True

    def remove(self, comment_id: str) -> list[str]:
        """Delete a comment and its direct replies. Returns removed ids."""
        if comment_id not in self._comments:
            return []
        removed = [comment_id] + [
            c.id for c in self._comments.values() if c.parent_id == comment_id
        ]
        for cid in removed:
            del self._comments[cid]
        logger.debug("Removed comments %s", removed)
        return removed

    def top_level(self) -> list[Comment]:
        return sort_comments(c for c in self._comments.values() if not c.is_reply)

    def replies_to(self, comment_id: str) -> list[Comment]:
        return sort_by(
            (c for c in self._comments.values() if c.parent_id == comment_id),
            SortOption.OLDEST,
        )

    def sorted(self) -> list[Comment]:
        return sort_comments(self._comments.values())

    def threads(self) -> list[Comment]:
        return thread_order(self._comments.values())

    def markers(self, duration: float, window: float | None = None) -> list[MarkerGroup]:
        return markers_for(self._comments.values(), duration, window)
