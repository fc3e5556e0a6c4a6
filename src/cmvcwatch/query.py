"""Report query construction.

Builds the ``-where`` clauses for the two CMVC report views and the
``Report -raw`` argv that carries them. Every user supplied value that ends
up in a clause goes through :func:`quote_list`; the only exception is an
explicit where-clause override, which is passed through verbatim.

Example commands::

    Report -family family@localhost@6666 -raw -view TrackView
      -where "lastUpdate between '<from>' and '<to>' and state = 'integrate'
              and releaseName in ('RC_123') order by defectName"

    Report -family family@localhost@6666 -raw -view ChangeView
      -where "defectName in ('1', '2') and releaseName in ('RC_123')
              order by defectName"
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from cmvcwatch.config.settings import Settings
from cmvcwatch.dates import format_cmvc_date
from cmvcwatch.errors import ConfigurationError
from cmvcwatch.models import TimeWindow

logger = structlog.get_logger()

TRACK_VIEW = "TrackView"
CHANGE_VIEW = "ChangeView"

INTEGRATE_STATE = "integrate"


def quote_list(values: Sequence[str]) -> str:
    """``['a', "b'c"]`` -> ``'a', 'b''c'``."""
    return ", ".join("'" + v.replace("'", "''") + "'" for v in values)


def quote_for_shell(values: Sequence[str]) -> str:
    """Join values into one double-quoted, space separated shell token.

    Returns ``""`` for no values, meaning there is nothing to check out.
    """
    if not values:
        return ""
    escaped = [
        v.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$").replace("`", "\\`")
        for v in values
    ]
    return '"' + " ".join(escaped) + '"'


def build_track_filter(
    window: TimeWindow,
    releases: Sequence[str],
    override_clause: str = "",
) -> str:
    """Where clause selecting tracks integrated inside ``window``."""
    if override_clause and override_clause.strip():
        return override_clause
    if not releases:
        raise ConfigurationError("at least one release is required", phase="tracks")
    return (
        f"lastUpdate between '{format_cmvc_date(window.start)}'"
        f" and '{format_cmvc_date(window.end)}'"
        f" and state = '{INTEGRATE_STATE}'"
        f" and releaseName in ({quote_list(releases)})"
        " order by defectName"
    )


def build_file_filter(track_ids: Sequence[str], releases: Sequence[str]) -> str | None:
    """Where clause selecting the files of ``track_ids``.

    ``None`` when there are no tracks; no ChangeView query is issued then.
    """
    if not track_ids:
        return None
    return (
        f"defectName in ({quote_list(track_ids)})"
        f" and releaseName in ({quote_list(releases)})"
        " order by defectName"
    )


class QueryBuilder:
    """Builds ``Report`` command lines for one configured family."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def releases(self) -> list[str]:
        return self._settings.release_list()

    def report_command(self, view: str, where: str) -> list[str]:
        return [
            self._settings.report_command,
            "-family",
            self._settings.family,
            "-raw",
            "-view",
            view,
            "-where",
            where,
        ]

    def track_view_command(self, window: TimeWindow) -> list[str]:
        where = build_track_filter(
            window,
            self.releases,
            self._settings.track_view_where_clause,
        )
        logger.debug("query.track_view", where=where)
        return self.report_command(TRACK_VIEW, where)

    def change_view_command(self, track_ids: Sequence[str]) -> list[str] | None:
        where = build_file_filter(track_ids, self.releases)
        if where is None:
            return None
        logger.debug("query.change_view", where=where, tracks=len(track_ids))
        return self.report_command(CHANGE_VIEW, where)
