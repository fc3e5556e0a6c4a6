"""Change model for one detection cycle.

Raw report lines are folded into ``TrackRecord`` / ``FileRecord`` values,
which the assembler turns into a ``ChangeModel``: one ``ChangeLogEntry``
per integrated track plus a release -> track index used by checkout.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

# ---------------------------------------------------------------------------
# Query inputs
# ---------------------------------------------------------------------------


class TimeWindow(BaseModel):
    """Closed ``[start, end]`` interval searched for integrated tracks."""

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> TimeWindow:
        if self.start > self.end:
            raise ValueError(f"window start {self.start} is after end {self.end}")
        return self


# ---------------------------------------------------------------------------
# Transient report records
# ---------------------------------------------------------------------------


class TrackRecord(BaseModel):
    """One line of the TrackView report."""

    track_id: str
    release_name: str
    user: str = ""
    last_update: datetime
    state: str = ""
    description: str = ""


class FileRecord(BaseModel):
    """One file touched by a track, from the ChangeView report."""

    track_id: str
    release_name: str
    file_name: str
    revision: str = ""


# ---------------------------------------------------------------------------
# Change model
# ---------------------------------------------------------------------------


class ChangedFile(BaseModel):
    file_name: str
    revision: str = ""


class ChangeLogEntry(BaseModel):
    """A track as exposed to the build system."""

    track_id: str
    release_name: str
    user: str = ""
    last_update: datetime
    description: str = ""
    files: list[ChangedFile] = Field(default_factory=list)


class ChangeModel(BaseModel):
    """Result of one detection cycle.

    ``entries`` keeps the order tracks were reported in; ``tracks_by_release``
    keeps first-seen order of track ids per release.
    """

    entries: list[ChangeLogEntry] = Field(default_factory=list)
    tracks_by_release: dict[str, list[str]] = Field(default_factory=dict)

    @property
    def track_ids(self) -> list[str]:
        return [e.track_id for e in self.entries]

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def entry_for(self, track_id: str) -> ChangeLogEntry | None:
        """Return the entry for ``track_id``, or ``None``."""
        for entry in self.entries:
            if entry.track_id == track_id:
                return entry
        return None
