"""Timestamp/comment correlation."""

from cuesync.correlation.comments import (
    CommentFilter,
    CommentStore,
    SortOption,
    comment_sort_key,
    sort_by,
    sort_comments,
    thread_order,
)
from cuesync.correlation.cursors import CursorTracker
from cuesync.correlation.timeline import (
    MarkerGroup,
    comments_near,
    format_time,
    format_video_time,
    markers_for,
    position_percent,
    quantize,
    time_from_pointer,
)

__all__ = [
    "CommentFilter",
    "CommentStore",
    "CursorTracker",
    "MarkerGroup",
    "SortOption",
    "comment_sort_key",
    "comments_near",
    "format_time",
    "format_video_time",
    "markers_for",
    "position_percent",
    "quantize",
    "sort_by",
    "sort_comments",
    "thread_order",
    "time_from_pointer",
]
