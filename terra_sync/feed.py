from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Dict, List, Tuple, Union

from ics import Calendar
from ics.grammar.parse import Container, ContentLine, string_to_container

from .errors import MalformedFeedError
from .models import Entry
from .utils import localize

WALL_FORMAT = "%Y%m%dT%H%M%S"

# (UID or "" when the feed gives none, DTSTART wall time) -> (start floating, end floating)
FloatingIndex = Dict[Tuple[str, str], Tuple[bool, bool]]


def _as_datetime(value):
    # ics 0.7 hands back Arrow objects
    return getattr(value, "datetime", value)


def _is_floating(line: ContentLine) -> bool:
    params = {name.upper(): values for name, values in line.params.items()}
    if "TZID" in params or [v.upper() for v in params.get("VALUE", [])] == ["DATE"]:
        return False
    value = line.value.strip()
    return "T" in value.upper() and not value.upper().endswith("Z")


def _walk_events(container: Container):
    for child in container:
        if isinstance(child, Container):
            if child.name.upper() == "VEVENT":
                yield child
            else:
                yield from _walk_events(child)


def floating_index(text: str) -> FloatingIndex:
    """Flag, per event, whether DTSTART/DTEND carry neither a TZID nor a UTC
    marker.

    ics reads such values as UTC; they are wall-clock times in the run zone.
    """
    index: FloatingIndex = {}
    for root in string_to_container(text):
        for vevent in _walk_events(root):
            lines = {line.name.upper(): line for line in vevent if isinstance(line, ContentLine)}
            dtstart = lines.get("DTSTART")
            if dtstart is None:
                continue
            start_floating = _is_floating(dtstart)
            dtend = lines.get("DTEND")
            # DURATION-based ends follow the start
            end_floating = _is_floating(dtend) if dtend is not None else start_floating
            uid = lines["UID"].value if "UID" in lines else ""
            wall = dtstart.value.strip().rstrip("Zz")
            index[(uid, wall)] = (start_floating, end_floating)
    return index


def _to_local(value, floating: bool, tz: tzinfo):
    moment = _as_datetime(value)
    if floating:
        return moment.replace(tzinfo=tz)
    return localize(moment, tz)


def parse_feed(data: Union[bytes, str], tz: tzinfo) -> List[Entry]:
    """Parse an iCal document into entries ordered by start time.

    Raises MalformedFeedError when the document cannot be decoded or parsed;
    nothing is returned for a partially readable feed.
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedFeedError(f"Feed is not valid UTF-8: {exc}") from exc
    else:
        text = data

    try:
        calendar = Calendar(text)
        floating = floating_index(text)
    except Exception as exc:
        raise MalformedFeedError(f"Unable to parse iCal feed: {exc}") from exc
    feed_uids = {uid for uid, _ in floating}

    entries: List[Entry] = []
    for event in calendar.events:
        if event.begin is None:
            logging.debug("Skipping feed event without DTSTART: %s", event.name)
            continue
        if event.all_day:
            # date values carry no zone; pin them to local midnight
            start = localize(_as_datetime(event.begin).date(), tz)
            end = localize(_as_datetime(event.end).date(), tz) if event.end is not None else start
        else:
            # ics invents a UID when the feed has none
            uid = event.uid if event.uid in feed_uids else ""
            wall = _as_datetime(event.begin).strftime(WALL_FORMAT)
            start_floating, end_floating = floating.get((uid, wall), (False, False))
            start = _to_local(event.begin, start_floating, tz)
            end = _to_local(event.end, end_floating, tz) if event.end is not None else start
        entries.append(
            Entry(
                summary=event.name or "",
                location=event.location or "",
                description=event.description or "",
                start=start,
                end=end,
            )
        )
    entries.sort(key=lambda entry: entry.start)
    logging.info("Parsed %d entries from feed", len(entries))
    return entries
