from __future__ import annotations

import logging
import time
from datetime import timedelta, tzinfo
from typing import List

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import AuthError, ConfigError, NetworkError, NotFoundError, RemoteError, ValidationError
from .models import Entry, RemoteEvent, Window

SCOPES = ["https://www.googleapis.com/auth/calendar"]


def _load_credentials(client_secrets_file: str, token_file: str) -> Credentials:
    creds = None
    if token_file:
        try:
            creds = Credentials.from_authorized_user_file(token_file, SCOPES)
        except (OSError, ValueError) as exc:
            logging.info("No usable cached token in %s (%s)", token_file, exc)
            creds = None
    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            logging.info("Refreshing Google credentials")
            try:
                creds.refresh(Request())
            except RefreshError as exc:
                raise AuthError(f"Unable to refresh Google credentials: {exc}") from exc
            except TransportError as exc:
                raise NetworkError(f"Google token endpoint unreachable: {exc}") from exc
        else:
            logging.info("Google credentials need to be approved in the browser")
            try:
                flow = InstalledAppFlow.from_client_secrets_file(client_secrets_file, SCOPES)
            except (OSError, ValueError) as exc:
                raise ConfigError(f"Unable to load Google client secrets {client_secrets_file}: {exc}") from exc
            creds = flow.run_local_server(port=0)
        with open(token_file, "w") as token:
            token.write(creds.to_json())
    return creds


def build_service(client_secrets_file: str, token_file: str):
    creds = _load_credentials(client_secrets_file, token_file)
    return build("calendar", "v3", credentials=creds)


def translate_http_error(exc: HttpError) -> RemoteError:
    status = exc.resp.status
    message = f"Google Calendar API returned {status}: {exc}"
    if status in (401, 403):
        return AuthError(message)
    if status in (404, 410):
        return NotFoundError(message)
    if status == 400:
        return ValidationError(message)
    return NetworkError(message)


def _execute(request):
    try:
        return request.execute()
    except HttpError as exc:
        raise translate_http_error(exc) from exc
    except RefreshError as exc:
        raise AuthError(f"Google credentials rejected: {exc}") from exc
    except TransportError as exc:
        raise NetworkError(f"Google token endpoint unreachable: {exc}") from exc
    except (httplib2.HttpLib2Error, OSError) as exc:
        raise NetworkError(f"Google Calendar API unreachable: {exc}") from exc


class GoogleCalendarSink:
    def __init__(self, service, calendar_id: str, tz: tzinfo, sleep_time: float = 0.0):
        self.service = service
        self.calendar_id = calendar_id
        self.tz = tz
        self.sleep_time = sleep_time

    def _pause(self) -> None:
        if self.sleep_time:
            time.sleep(self.sleep_time)

    def list_events(self, window: Window) -> List[RemoteEvent]:
        """Events whose start lies inside ``window``, in start-time order.

        The API returns everything overlapping ``[timeMin, timeMax)``, so
        events that began before the window are filtered out here.
        """
        logging.info("Fetching existing events from %s to %s", window.start, window.end)
        events: List[RemoteEvent] = []
        page_token = None
        while True:
            result = _execute(
                self.service.events().list(
                    calendarId=self.calendar_id,
                    timeMin=window.start.isoformat(),
                    timeMax=(window.end + timedelta(seconds=1)).isoformat(),
                    singleEvents=True,
                    showDeleted=False,
                    orderBy="startTime",
                    maxResults=2500,
                    pageToken=page_token,
                )
            )
            for item in result.get("items", []):
                event = RemoteEvent.from_gcal(item, self.tz)
                if window.contains(event.start):
                    events.append(event)
            page_token = result.get("nextPageToken")
            if not page_token:
                break
        logging.info("Found %d existing events in window", len(events))
        return events

    def delete_event(self, event_id: str) -> None:
        _execute(self.service.events().delete(calendarId=self.calendar_id, eventId=event_id))
        self._pause()

    def insert_event(self, entry: Entry) -> RemoteEvent:
        created = _execute(self.service.events().insert(calendarId=self.calendar_id, body=entry.to_gcal_body()))
        self._pause()
        return RemoteEvent.from_gcal(created, self.tz)
