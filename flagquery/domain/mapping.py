"""
Row-to-record mapping for the `flag` table.

`to_flag_record` is a pure function: the same row always produces an equal
record. Timestamps are rendered in a fixed, locale-independent form
(RFC 3339 in UTC, `Z` suffix) so that `parse_instant` can reverse them.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional

from flagquery.domain.models import FlagRecord, FlagRow

FLAG_COLUMNS = ("flag_id", "flag_code", "state", "flag_data", "last_update")


def format_instant(value: date | datetime | None) -> Optional[str]:
    """
    Render a stored instant as an RFC 3339 UTC string.

    Naive datetimes are taken to be UTC, a bare date renders as midnight UTC,
    and None stays None. Fractional seconds are only emitted when non-zero.
    """
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


def parse_instant(text: str) -> datetime:
    """Parse a string produced by `format_instant` back into an aware UTC datetime."""
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_flag_record(row: FlagRow) -> FlagRecord:
    """Map one `flag` row onto a FlagRecord."""
    return FlagRecord(
        id=row.get("flag_id"),
        code=row.get("flag_code"),
        state=row.get("state"),
        data=row.get("flag_data"),
        last_update=format_instant(row.get("last_update")),
    )


__all__ = ["FLAG_COLUMNS", "format_instant", "parse_instant", "to_flag_record"]
