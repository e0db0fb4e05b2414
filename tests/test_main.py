from datetime import datetime
from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError

import main
from fakes import FakeSink, at
from terra_sync import browser
from terra_sync.errors import AuthError, ValidationError

FEED = b"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Terra//Schedule//JA
BEGIN:VEVENT
UID:a@terra
DTSTART:20241105T000000Z
DTEND:20241105T010000Z
SUMMARY:Standup
END:VEVENT
BEGIN:VEVENT
UID:b@terra
DTSTART:20241106T000000Z
DTEND:20241106T010000Z
SUMMARY:Planning
END:VEVENT
BEGIN:VEVENT
UID:c@terra
DTSTART:20241107T000000Z
DTEND:20241107T010000Z
SUMMARY:Retro
END:VEVENT
END:VCALENDAR
"""


class FrozenDatetime(datetime):
    @classmethod
    def now(cls, tz=None):
        return at(2024, 11, 20, 9).astimezone(tz)


@pytest.fixture
def fake_sink(monkeypatch, tmp_path):
    sink = FakeSink()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TIMEZONE", "Asia/Tokyo")
    monkeypatch.setenv("DELETE_TERM_MONTH", "3")
    monkeypatch.setattr(main, "datetime", FrozenDatetime)
    monkeypatch.setattr(main, "build_service", lambda secrets, token: object())
    monkeypatch.setattr(main, "GoogleCalendarSink", lambda service, calendar_id, tz, sleep_time=0.0: sink)
    return sink


@pytest.fixture
def feed_file(tmp_path):
    path = tmp_path / "schedule.ics"
    path.write_bytes(FEED)
    return str(path)


def test_successful_run(fake_sink, feed_file):
    stale = fake_sink.add("stale", at(2024, 11, 30, 10))

    assert main.main(["--ics-file", feed_file]) == 0

    assert stale.id not in fake_sink.events
    assert sorted(e.summary for e in fake_sink.events.values()) == ["Planning", "Retro", "Standup"]


def test_failed_delete_does_not_change_exit_status(fake_sink, feed_file):
    stale = fake_sink.add("stale", at(2024, 11, 30, 10))
    fake_sink.fail_delete[stale.id] = AuthError("forbidden")

    assert main.main(["--ics-file", feed_file]) == 0
    assert len(fake_sink.events) == 4


def test_insert_failure_exits_non_zero(fake_sink, feed_file):
    fake_sink.fail_insert_at[2] = ValidationError("invalid event")

    assert main.main(["--ics-file", feed_file]) == 1
    assert [e.summary for e in fake_sink.events.values()] == ["Standup"]
    assert fake_sink.insert_calls == 2


def test_list_failure_exits_non_zero(fake_sink, feed_file):
    fake_sink.fail_list = AuthError("token revoked")
    assert main.main(["--ics-file", feed_file]) == 1
    assert fake_sink.insert_calls == 0


def test_malformed_feed_exits_non_zero(fake_sink, tmp_path):
    path = tmp_path / "broken.ics"
    path.write_bytes(b"this is not a calendar")
    assert main.main(["--ics-file", str(path)]) == 1


def test_missing_feed_file(fake_sink, tmp_path):
    assert main.main(["--ics-file", str(tmp_path / "nope.ics")]) == 1


def test_invalid_months(fake_sink, feed_file):
    assert main.main(["--ics-file", feed_file, "--months", "0"]) == 1


def test_invalid_months_from_environment(fake_sink, feed_file, monkeypatch):
    monkeypatch.setenv("DELETE_TERM_MONTH", "-1")
    assert main.main(["--ics-file", feed_file]) == 1


def test_dry_run_leaves_calendar_alone(fake_sink, feed_file):
    existing = fake_sink.add("existing", at(2024, 11, 30, 10))

    assert main.main(["--ics-file", feed_file, "--dry-run"]) == 0
    assert list(fake_sink.events) == [existing.id]


def test_browser_launch_failure_exits_non_zero(fake_sink, monkeypatch):
    monkeypatch.setenv("TERRA_USER_ID", "u123")
    factory = MagicMock()
    factory.return_value.start.return_value.chromium.launch.side_effect = PlaywrightError(
        "Executable doesn't exist at /ms-playwright/chromium/chrome"
    )
    monkeypatch.setattr(browser, "sync_playwright", factory)

    assert main.main([]) == 1
    factory.return_value.start.return_value.stop.assert_called_once()
    assert fake_sink.insert_calls == 0
