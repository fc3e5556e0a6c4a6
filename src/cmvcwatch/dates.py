"""Fixed CMVC date-time representation shared by queries and report parsing."""

from __future__ import annotations

from datetime import datetime

CMVC_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"

# Lower bound of the window when no successful build exists yet.
MIN_DATE = datetime(1970, 1, 1)


def to_local_naive(value: datetime) -> datetime:
    """Aware values become naive local time; naive values are kept as is.

    The family server compares against its own local timestamps.
    """
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def format_cmvc_date(value: datetime) -> str:
    """Render ``value`` the way the CMVC ``-where`` clause expects it."""
    return to_local_naive(value).strftime(CMVC_DATE_FORMAT)


def parse_cmvc_date(text: str) -> datetime:
    """Parse a timestamp printed by ``Report -raw``. Raises ``ValueError``."""
    return datetime.strptime(text.strip(), CMVC_DATE_FORMAT)
