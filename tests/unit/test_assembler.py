"""Tests for cmvcwatch.assembler -- folding records into a ChangeModel."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest
from structlog.testing import capture_logs

from cmvcwatch.assembler import from_track_records, merge_file_records, tracks_for_release
from cmvcwatch.errors import MalformedReportError
from cmvcwatch.models import ChangedFile, FileRecord, TrackRecord
from cmvcwatch.report import parse_change_view, parse_track_view


def _track(**overrides: Any) -> TrackRecord:
    defaults: dict[str, Any] = {
        "track_id": "100",
        "release_name": "RC_1",
        "user": "bob",
        "last_update": datetime(2020, 1, 1, 12, 0, 0),
        "state": "integrate",
        "description": "Fix",
    }
    defaults.update(overrides)
    return TrackRecord(**defaults)


def _file(track_id: str = "100", name: str = "a.c", revision: str = "1.1") -> FileRecord:
    return FileRecord(track_id=track_id, release_name="RC_1", file_name=name, revision=revision)


class TestFromTrackRecords:
    def test_one_entry_per_track_with_empty_files(self):
        model = from_track_records([_track(), _track(track_id="101")])
        assert model.track_ids == ["100", "101"]
        assert all(entry.files == [] for entry in model.entries)

    def test_entry_fields_copied(self):
        entry = from_track_records([_track()]).entries[0]
        assert entry.release_name == "RC_1"
        assert entry.user == "bob"
        assert entry.description == "Fix"
        assert entry.last_update == datetime(2020, 1, 1, 12, 0, 0)

    def test_groups_by_release_in_first_seen_order(self):
        model = from_track_records(
            [
                _track(track_id="3", release_name="RC_2"),
                _track(track_id="1", release_name="RC_1"),
                _track(track_id="2", release_name="RC_2"),
            ]
        )
        assert list(model.tracks_by_release) == ["RC_2", "RC_1"]
        assert model.tracks_by_release["RC_2"] == ["3", "2"]

    def test_duplicate_track_is_malformed(self):
        with pytest.raises(MalformedReportError) as exc_info:
            from_track_records([_track(), _track()])
        assert exc_info.value.release == "RC_1"

    def test_empty_input(self):
        model = from_track_records([])
        assert model.is_empty
        assert model.tracks_by_release == {}


class TestMergeFileRecords:
    def test_appends_in_report_order(self):
        model = from_track_records([_track(), _track(track_id="101")])
        merge_file_records(
            model,
            [_file(name="b.c"), _file(track_id="101", name="x.c"), _file(name="a.c")],
        )
        assert [f.file_name for f in model.entries[0].files] == ["b.c", "a.c"]
        assert [f.file_name for f in model.entries[1].files] == ["x.c"]

    def test_returns_same_model(self):
        model = from_track_records([_track()])
        assert merge_file_records(model, []) is model

    def test_orphan_is_skipped_and_logged(self):
        model = from_track_records([_track()])
        with capture_logs() as logs:
            merge_file_records(model, [_file(track_id="999", name="ghost.c")])
        assert model.track_ids == ["100"]
        assert model.entries[0].files == []
        orphans = [e for e in logs if e["event"] == "assembler.orphan_file_record"]
        assert len(orphans) == 1
        assert orphans[0]["track_id"] == "999"
        assert orphans[0]["log_level"] == "warning"


class TestTracksForRelease:
    def test_known_release(self):
        model = from_track_records([_track(), _track(track_id="101")])
        assert tracks_for_release(model, "RC_1") == ["100", "101"]

    def test_unknown_release_is_empty(self):
        model = from_track_records([_track()])
        assert tracks_for_release(model, "RC_9") == []

    def test_returns_a_copy(self):
        model = from_track_records([_track()])
        tracks_for_release(model, "RC_1").append("x")
        assert model.tracks_by_release["RC_1"] == ["100"]


class TestEndToEnd:
    def test_track_view_to_model(self):
        raw = "RC_1|100|bob|2020/01/01 10:00:00|integrate|Fix\n"
        model = from_track_records(parse_track_view(raw))
        assert model.track_ids == ["100"]
        assert model.entries[0].files == []
        assert tracks_for_release(model, "RC_1") == ["100"]
        assert tracks_for_release(model, "RC_2") == []

    def test_change_view_populates_files(self):
        model = from_track_records(
            parse_track_view("RC_1|100|bob|2020/01/01 10:00:00|integrate|Fix\n")
        )
        merge_file_records(model, parse_change_view("RC_1|100|1.3|a.c\nRC_1|100|1.3|b.c\n"))
        assert model.entries[0].files == [
            ChangedFile(file_name="a.c", revision="1.3"),
            ChangedFile(file_name="b.c", revision="1.3"),
        ]


class TestChangeModel:
    def test_entry_for(self):
        model = from_track_records([_track(), _track(track_id="101")])
        entry = model.entry_for("101")
        assert entry is not None
        assert entry.track_id == "101"
        assert model.entry_for("999") is None
