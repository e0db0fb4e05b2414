from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Callable, List, Optional, Protocol, Sequence

from .config import SyncConfig
from .errors import RemoteError
from .models import Entry, RemoteEvent, SyncReport, Window
from .term import compute_window


class CalendarSink(Protocol):
    def list_events(self, window: Window) -> List[RemoteEvent]: ...

    def delete_event(self, event_id: str) -> None: ...

    def insert_event(self, entry: Entry) -> RemoteEvent: ...


FeedParser = Callable[[bytes], Sequence[Entry]]


class WindowSyncEngine:
    """Replaces every calendar event starting inside the sync window with the
    feed entries that start inside it.

    A failed delete is logged and skipped; the next run's purge lists it
    again. The first failed insert aborts the run.
    """

    def __init__(
        self,
        config: SyncConfig,
        sink: CalendarSink,
        parser: FeedParser,
        tz: Optional[tzinfo] = None,
        dry_run: bool = False,
    ):
        self.config = config
        self.sink = sink
        self.parser = parser
        self.tz = tz
        self.dry_run = dry_run
        self.report = SyncReport()

    def purge(self, window: Window) -> int:
        existing = self.sink.list_events(window)
        if not existing:
            logging.info("No deletable events found")
            return 0

        deleted = 0
        for event in existing:
            if self.dry_run:
                logging.info("DELETE (dry run) %s %s %s", event.id, event.summary, event.start)
                deleted += 1
                continue
            try:
                self.sink.delete_event(event.id)
            except RemoteError as exc:
                logging.warning("Failed to delete event %s, skipping: %s", event.id, exc)
                self.report.delete_failed += 1
                continue
            logging.info("DELETE %s %s %s", event.id, event.summary, event.start)
            deleted += 1

        self.report.deleted += deleted
        return deleted

    def reconcile(self, window: Window, entries: Sequence[Entry]) -> int:
        inserted = 0
        for entry in entries:
            if not window.contains(entry.start):
                logging.debug("Skipping %s at %s, outside window", entry.summary, entry.start)
                self.report.skipped += 1
                continue
            if self.dry_run:
                logging.info("CREATE (dry run) %s %s-%s", entry.summary, entry.start, entry.end)
            else:
                # failures propagate; nothing after this entry is attempted
                created = self.sink.insert_event(entry)
                logging.info("CREATE %s %s-%s %s", entry.summary, entry.start, entry.end, created.html_link or created.id)
            inserted += 1
            self.report.inserted += 1

        if not inserted:
            logging.info("No insertable events found")
        return inserted

    def run(self, now: datetime, feed: bytes) -> SyncReport:
        self.report = SyncReport()
        window = compute_window(now, self.config.window_months, self.tz)
        self.purge(window)
        entries = self.parser(feed)
        self.reconcile(window, entries)
        logging.info(
            "Sync complete for %s: deleted=%d delete_failed=%d skipped=%d inserted=%d",
            self.config.calendar_id,
            self.report.deleted,
            self.report.delete_failed,
            self.report.skipped,
            self.report.inserted,
        )
        return self.report
