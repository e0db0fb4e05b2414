import pytest

from fakes import TZ, at
from terra_sync.errors import MalformedFeedError
from terra_sync.feed import parse_feed

FEED = b"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Terra//Schedule//JA
BEGIN:VEVENT
UID:review@terra
DTSTART:20241203T050000Z
DTEND:20241203T060000Z
SUMMARY:Design review
LOCATION:Room 4
DESCRIPTION:Bring the draft
END:VEVENT
BEGIN:VEVENT
UID:standup@terra
DTSTART:20241105T000000Z
DTEND:20241105T003000Z
SUMMARY:Standup
END:VEVENT
BEGIN:VEVENT
UID:holiday@terra
DTSTART;VALUE=DATE:20241110
DTEND;VALUE=DATE:20241111
SUMMARY:Company holiday
END:VEVENT
END:VCALENDAR
"""


def test_parses_entries_in_start_order():
    entries = parse_feed(FEED, TZ)
    assert [e.summary for e in entries] == ["Standup", "Company holiday", "Design review"]


def test_timed_entry_fields():
    review = parse_feed(FEED, TZ)[-1]
    assert review.location == "Room 4"
    assert review.description == "Bring the draft"
    assert review.start == at(2024, 12, 3, 14)
    assert review.end == at(2024, 12, 3, 15)


def test_missing_fields_become_empty_strings():
    standup = parse_feed(FEED, TZ)[0]
    assert standup.location == ""
    assert standup.description == ""


def test_all_day_entry_starts_at_local_midnight():
    holiday = parse_feed(FEED, TZ)[1]
    assert holiday.start == at(2024, 11, 10)
    assert holiday.end > holiday.start


def test_accepts_text_and_bom():
    assert len(parse_feed(FEED.decode("utf-8"), TZ)) == 3
    assert len(parse_feed(b"\xef\xbb\xbf" + FEED, TZ)) == 3


def test_rejects_garbage():
    with pytest.raises(MalformedFeedError):
        parse_feed(b"this is not a calendar", TZ)


def test_rejects_undecodable_bytes():
    with pytest.raises(MalformedFeedError):
        parse_feed(b"\xff\xfe\x00garbage", TZ)


FLOATING_FEED = b"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Terra//Schedule//JA
BEGIN:VEVENT
UID:floating@terra
DTSTART:20241203T100000
DTEND:20241203T113000
SUMMARY:Client visit
END:VEVENT
BEGIN:VEVENT
DTSTART:20241101T000000
DTEND:20241101T010000
SUMMARY:Month opening
END:VEVENT
BEGIN:VEVENT
UID:utc@terra
DTSTART:20241101T000000Z
DTEND:20241101T010000Z
SUMMARY:UTC call
END:VEVENT
END:VCALENDAR
"""


def test_floating_times_are_wall_clock_in_timezone():
    visit = next(e for e in parse_feed(FLOATING_FEED, TZ) if e.summary == "Client visit")
    assert visit.start == at(2024, 12, 3, 10)
    assert visit.end == at(2024, 12, 3, 11, 30)


def test_floating_time_without_uid_keeps_month_boundary():
    opening = next(e for e in parse_feed(FLOATING_FEED, TZ) if e.summary == "Month opening")
    assert opening.start == at(2024, 11, 1, 0, 0, 0)


def test_utc_time_next_to_floating_time_is_converted():
    call = next(e for e in parse_feed(FLOATING_FEED, TZ) if e.summary == "UTC call")
    assert call.start == at(2024, 11, 1, 9)
