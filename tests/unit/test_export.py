"""Unit tests for comment export."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone

import pytest

from cuesync.export.comments import CSV_COLUMNS, export_csv, export_text, save_export
from cuesync.models.comment import SENTINEL_GENERAL, Comment


def _comment(cid: str, timestamp: float, created: datetime, **kwargs) -> Comment:
    fields = {
        "id": cid,
        "text": f"note {cid}",
        "author_id": "u-" + cid,
        "author_name": "Reviewer " + cid.upper(),
        "timestamp": timestamp,
        "created_at": created,
    }
    fields.update(kwargs)
    return Comment(**fields)


@pytest.fixture
def comments() -> list[Comment]:
    return [
        _comment("g", SENTINEL_GENERAL, datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)),
        _comment(
            "r",
            SENTINEL_GENERAL,
            datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
            parent_id="a",
            text='Reply, with "quotes"',
        ),
        _comment("b", 125.4, datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)),
        _comment("a", 7.9, datetime(2024, 3, 1, 10, 15, 30, 250000, tzinfo=timezone.utc)),
    ]


class TestCsvExport:
    def test_rows_follow_thread_order(self, comments):
        rows = list(csv.DictReader(io.StringIO(export_csv(comments))))

        assert tuple(rows[0].keys()) == CSV_COLUMNS
        assert [r["author"] for r in rows] == [
            "Reviewer A",
            "Reviewer R",
            "Reviewer B",
            "Reviewer G",
        ]
        assert [r["videoTime"] for r in rows] == ["00:07", "General", "02:05", "General"]
        assert rows[0]["createdAt"] == "2024-03-01T10:15:30.250Z"
        assert rows[1]["content"] == 'Reply, with "quotes"'

    def test_output_is_deterministic(self, comments):
        assert export_csv(comments) == export_csv(list(reversed(comments)))
        assert "\r" not in export_csv(comments)

    def test_author_falls_back_to_id(self):
        comment = _comment("x", 1.0, datetime(2024, 1, 1, tzinfo=timezone.utc), author_name="")

        rows = list(csv.DictReader(io.StringIO(export_csv([comment]))))

        assert rows[0]["author"] == "u-x"

    def test_naive_timestamps_treated_as_utc(self):
        comment = _comment("n", 1.0, datetime(2024, 1, 1, 12, 0))

        assert "2024-01-01T12:00:00.000Z" in export_csv([comment])

    def test_empty_list_has_header_only(self):
        assert export_csv([]) == "author,content,videoTime,createdAt\n"


class TestTextExport:
    def test_replies_are_indented(self, comments):
        lines = export_text(comments).splitlines()

        assert lines[0] == "[00:07] Reviewer A: note a"
        assert lines[1].startswith("    [General] Reviewer R:")

    def test_empty(self):
        assert export_text([]) == ""


class TestSaveExport:
    @pytest.mark.parametrize("fmt", ["csv", "text"])
    def test_writes_file(self, tmp_path, comments, fmt):
        target = tmp_path / "out" / f"comments.{fmt}"

        path = save_export(comments, target, fmt)

        assert path == target
        assert target.read_text(encoding="utf-8").startswith(
            "author," if fmt == "csv" else "[00:07]"
        )

    def test_unknown_format(self, tmp_path, comments):
        with pytest.raises(ValueError):
            save_export(comments, tmp_path / "x.pdf", "pdf")
