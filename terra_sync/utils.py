from __future__ import annotations

from datetime import date, datetime, time, tzinfo


def localize(value: date | datetime, tz: tzinfo) -> datetime:
    """Return an aware datetime in ``tz``.

    Plain dates become local midnight and naive datetimes are taken as
    wall-clock time in ``tz``.
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=tz)
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def gcal_time(value: datetime) -> dict:
    body = {"dateTime": value.isoformat()}
    zone = getattr(value.tzinfo, "key", None)
    if zone:
        body["timeZone"] = zone
    return body


def parse_gcal_time(value: dict, tz: tzinfo) -> datetime:
    if "dateTime" in value:
        raw = value["dateTime"]
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        return localize(datetime.fromisoformat(raw), tz)
    return localize(date.fromisoformat(value["date"]), tz)
