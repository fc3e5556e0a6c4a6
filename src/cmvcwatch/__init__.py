"""CMVC change detection for build systems.

Queries a CMVC family for tracks integrated since the last successful
build, assembles them with their files into a release-grouped change
model, and persists that model as a build changelog.
"""

from cmvcwatch.models import (
    ChangedFile,
    ChangeLogEntry,
    ChangeModel,
    FileRecord,
    TimeWindow,
    TrackRecord,
)

__version__ = "0.1.0"

__all__ = [
    "ChangeLogEntry",
    "ChangeModel",
    "ChangedFile",
    "FileRecord",
    "TimeWindow",
    "TrackRecord",
    "__version__",
]
