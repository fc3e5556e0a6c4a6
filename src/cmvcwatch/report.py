"""Parser for ``Report -raw`` output.

The raw format is line oriented: one record per line, fields separated by
``|``. Each view is described by a :class:`LineSchema` so that a change in
the report tool's output only touches the schema constants below, not the
parsing loop.

Lines that do not fit the schema (banners, blank lines, truncated output)
are skipped. A non-empty report in which *no* line fits is rejected with
``MalformedReportError``: that means the tool's format changed, not that
there were no changes.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import IO

import structlog
from pydantic import BaseModel

from cmvcwatch.dates import parse_cmvc_date
from cmvcwatch.errors import MalformedReportError
from cmvcwatch.models import FileRecord, TrackRecord

logger = structlog.get_logger()

ReportSource = str | bytes | IO[str] | IO[bytes] | Iterable[str] | Iterable[bytes]

# ---------------------------------------------------------------------------
# Line schemas
# ---------------------------------------------------------------------------


class LineSchema(BaseModel):
    """Declarative layout of one raw report view.

    ``columns`` are positional. Columns listed in ``multi_valued`` hold several
    sub-values joined by the mapped secondary delimiter. When ``open_tail``
    is set the last field keeps any further primary delimiters, which lets
    free text such as a track abstract contain ``|``.
    """

    model_config = {"frozen": True}

    view: str
    columns: tuple[str, ...]
    header: tuple[str, ...] = ()
    delimiter: str = "|"
    multi_valued: dict[str, str] = {}
    required: tuple[str, ...] = ()
    open_tail: bool = False

    def split(self, line: str) -> dict[str, str] | None:
        """Map ``line`` onto the schema, or ``None`` if it does not fit."""
        if self.open_tail:
            parts = line.split(self.delimiter, len(self.columns) - 1)
        else:
            parts = line.split(self.delimiter)
        if len(parts) != len(self.columns):
            return None
        values = [p.strip() for p in parts]
        if self.header and tuple(values) == self.header:
            return None
        row = dict(zip(self.columns, values, strict=True))
        if any(not row[name] for name in self.required):
            return None
        return row

    def sub_values(self, row: dict[str, str], field: str) -> list[str]:
        sep = self.multi_valued.get(field)
        if sep is None:
            return [row[field]]
        return [v.strip() for v in row[field].split(sep) if v.strip()]


TRACK_VIEW_SCHEMA = LineSchema(
    view="TrackView",
    columns=("release_name", "track_id", "user", "last_update", "state", "description"),
    header=("releaseName", "defectName", "userLogin", "lastUpdate", "state", "abstract"),
    required=("release_name", "track_id", "last_update"),
    open_tail=True,
)

CHANGE_VIEW_SCHEMA = LineSchema(
    view="ChangeView",
    columns=("release_name", "track_id", "revision", "file_name"),
    header=("releaseName", "defectName", "versionSID", "pathName"),
    multi_valued={"file_name": ","},
    required=("release_name", "track_id", "file_name"),
)


# ---------------------------------------------------------------------------
# Line iteration
# ---------------------------------------------------------------------------


def _decode(line: str | bytes) -> str:
    if isinstance(line, bytes):
        return line.decode("utf-8", errors="replace")
    return line


def _iter_lines(source: ReportSource) -> Iterator[str]:
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")
    if isinstance(source, str):
        yield from source.splitlines()
        return
    for line in source:
        yield _decode(line).rstrip("\r\n")


def iter_rows(source: ReportSource, schema: LineSchema) -> Iterator[tuple[int, dict[str, str]]]:
    """Yield ``(line_number, row)`` for every line that fits ``schema``."""
    has_content = False
    matched = 0
    for number, line in enumerate(_iter_lines(source), start=1):
        if not line.strip():
            continue
        has_content = True
        row = schema.split(line)
        if row is None:
            logger.debug("report.line_skipped", view=schema.view, line_number=number)
            continue
        matched += 1
        yield number, row
    if has_content and not matched:
        raise MalformedReportError(
            f"no line of the {schema.view} report matches the expected layout",
            view=schema.view,
        )


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def _to_track_record(number: int, row: dict[str, str]) -> TrackRecord:
    try:
        last_update = parse_cmvc_date(row["last_update"])
    except ValueError as exc:
        raise MalformedReportError(
            f"unparseable lastUpdate {row['last_update']!r} for track {row['track_id']}",
            view=TRACK_VIEW_SCHEMA.view,
            line_number=number,
        ) from exc
    return TrackRecord(
        track_id=row["track_id"],
        release_name=row["release_name"],
        user=row["user"],
        last_update=last_update,
        state=row["state"],
        description=row["description"],
    )


def parse_track_view(source: ReportSource) -> Iterator[TrackRecord]:
    """Lazily parse a TrackView report into ``TrackRecord`` values."""
    for number, row in iter_rows(source, TRACK_VIEW_SCHEMA):
        yield _to_track_record(number, row)


def parse_change_view(source: ReportSource) -> Iterator[FileRecord]:
    """Lazily parse a ChangeView report, one ``FileRecord`` per file."""
    schema = CHANGE_VIEW_SCHEMA
    for number, row in iter_rows(source, schema):
        names = schema.sub_values(row, "file_name")
        if not names:
            logger.debug("report.empty_file_list", view=schema.view, line_number=number)
            continue
        for name in names:
            yield FileRecord(
                track_id=row["track_id"],
                release_name=row["release_name"],
                file_name=name,
                revision=row["revision"],
            )


def has_any_track(source: ReportSource) -> bool:
    """True as soon as the first valid TrackView line is seen."""
    for _ in parse_track_view(source):
        return True
    return False
