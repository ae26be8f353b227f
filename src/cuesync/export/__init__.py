"""Comment export."""

from cuesync.export.comments import (
    CSV_COLUMNS,
    EXPORT_FORMATS,
    comment_rows,
    export_csv,
    export_text,
    save_export,
)

__all__ = [
    "CSV_COLUMNS",
    "EXPORT_FORMATS",
    "comment_rows",
    "export_csv",
    "export_text",
    "save_export",
]
