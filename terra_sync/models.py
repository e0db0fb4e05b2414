from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from .utils import gcal_time, parse_gcal_time


@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        # both bounds inclusive
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class Entry:
    """Appointment parsed from the Terra iCal feed."""

    summary: str
    location: str
    description: str
    start: datetime
    end: datetime

    def to_gcal_body(self) -> dict:
        return {
            "summary": self.summary,
            "location": self.location,
            "description": self.description,
            "start": gcal_time(self.start),
            "end": gcal_time(self.end),
        }


@dataclass(frozen=True)
class RemoteEvent:
    """Event as stored in Google Calendar, identified by the API-assigned id."""

    id: str
    start: datetime
    end: datetime
    summary: str = ""
    location: str = ""
    description: str = ""
    html_link: Optional[str] = None

    @classmethod
    def from_gcal(cls, item: dict, tz: tzinfo) -> "RemoteEvent":
        start = parse_gcal_time(item["start"], tz)
        end = parse_gcal_time(item.get("end", item["start"]), tz)
        return cls(
            id=item["id"],
            start=start,
            end=end,
            summary=item.get("summary", ""),
            location=item.get("location", ""),
            description=item.get("description", ""),
            html_link=item.get("htmlLink"),
        )


@dataclass
class SyncReport:
    deleted: int = 0
    delete_failed: int = 0
    skipped: int = 0
    inserted: int = 0
