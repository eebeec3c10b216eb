from __future__ import annotations

import datetime as dt


# Day string written by older clients, e.g. "Mon Oct 19 2026"
LEGACY_DAY_FORMAT = "%a %b %d %Y"


def to_date(value: dt.date | dt.datetime | str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    s = str(value).strip()
    if not s:
        raise ValueError("empty date")
    try:
        return dt.date.fromisoformat(s[:10])
    except ValueError:
        pass
    try:
        return dt.datetime.strptime(s, LEGACY_DAY_FORMAT).date()
    except ValueError:
        raise ValueError(f"unrecognized date: {value!r}") from None


def normalize_date_key(value: dt.date | dt.datetime | str) -> str:
    """Every per-day map in storage is keyed by this (YYYY-MM-DD)."""
    return to_date(value).isoformat()


def week_start(value: dt.date | dt.datetime | str | None = None) -> str:
    """ISO date of the Monday of the week containing `value` (today if None)."""
    d = to_date(value) if value is not None else dt.date.today()
    return (d - dt.timedelta(days=d.weekday())).isoformat()


def week_days(start: dt.date | str) -> list[str]:
    d = to_date(start)
    return [(d + dt.timedelta(days=i)).isoformat() for i in range(7)]
