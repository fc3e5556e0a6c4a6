"""Folds report records into a ``ChangeModel``."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from cmvcwatch.errors import MalformedReportError
from cmvcwatch.models import (
    ChangedFile,
    ChangeLogEntry,
    ChangeModel,
    FileRecord,
    TrackRecord,
)

logger = structlog.get_logger()


def from_track_records(records: Iterable[TrackRecord]) -> ChangeModel:
    """One entry per track, in report order, files left empty.

    A track reported twice within the same window is a format mismatch and
    raises ``MalformedReportError``.
    """
    model = ChangeModel()
    seen: set[str] = set()
    for record in records:
        if record.track_id in seen:
            raise MalformedReportError(
                f"track {record.track_id} reported more than once",
                view="TrackView",
                phase="tracks",
                release=record.release_name,
            )
        seen.add(record.track_id)
        model.entries.append(
            ChangeLogEntry(
                track_id=record.track_id,
                release_name=record.release_name,
                user=record.user,
                last_update=record.last_update,
                description=record.description,
            )
        )
        model.tracks_by_release.setdefault(record.release_name, []).append(record.track_id)
    logger.info(
        "assembler.tracks_assembled",
        tracks=len(model.entries),
        releases=list(model.tracks_by_release),
    )
    return model


def merge_file_records(model: ChangeModel, records: Iterable[FileRecord]) -> ChangeModel:
    """Append each file to the entry of its track, in place.

    Files of tracks missing from the model are skipped with a warning: the
    track may have left the window between the TrackView and the ChangeView
    query.
    """
    by_track = {entry.track_id: entry for entry in model.entries}
    merged = 0
    skipped = 0
    for record in records:
        entry = by_track.get(record.track_id)
        if entry is None:
            skipped += 1
            logger.warning(
                "assembler.orphan_file_record",
                track_id=record.track_id,
                release=record.release_name,
                file_name=record.file_name,
            )
            continue
        entry.files.append(ChangedFile(file_name=record.file_name, revision=record.revision))
        merged += 1
    logger.info("assembler.files_merged", files=merged, skipped=skipped)
    return model


def tracks_for_release(model: ChangeModel, release_name: str) -> list[str]:
    return list(model.tracks_by_release.get(release_name, []))
