"""Comment list export as CSV or plain text."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from datetime import timezone
from pathlib import Path

from cuesync.correlation.comments import thread_order
from cuesync.correlation.timeline import format_video_time
from cuesync.models.comment import Comment

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("author", "content", "videoTime", "createdAt")
EXPORT_FORMATS = ("csv", "text")


def _iso_utc(comment: Comment) -> str:
    created = comment.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def comment_rows(comments: Iterable[Comment]) -> list[dict[str, str]]:
    """One row per comment: each top-level comment followed by its replies."""
    return [
        {
            "author": comment.author_name or comment.author_id,
            "content": comment.text,
            "videoTime": format_video_time(comment.timestamp),
            "createdAt": _iso_utc(comment),
        }
        for comment in thread_order(comments)
    ]


def export_csv(comments: Iterable[Comment]) -> str:
    """Render comments as CSV with a header row and ``\\n`` line endings."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(comment_rows(comments))
    return buffer.getvalue()


def export_text(comments: Iterable[Comment]) -> str:
    """Render comments as a plain listing, replies indented."""
    lines = []
    for comment in thread_order(comments):
        author = comment.author_name or comment.author_id
        indent = "    " if comment.is_reply else ""
        lines.append(f"{indent}[{format_video_time(comment.timestamp)}] {author}: {comment.text}")
    return "\n".join(lines) + "\n" if lines else ""


def save_export(comments: Iterable[Comment], output_path: str | Path, fmt: str = "csv") -> Path:
    """Write an export to ``output_path``.

    Raises:
        ValueError: If ``fmt`` is not a known export format
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format: {fmt}")
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    content = export_csv(comments) if fmt == "csv" else export_text(comments)
    output_path.write_text(content, encoding="utf-8")
    logger.info("Exported comments to %s", output_path)
    return output_path
