from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

DEFAULT_TIMEZONE = "Asia/Tokyo"
DEFAULT_BASE_URL = "http://terra.intra.tis.co.jp/aqua/"
DEFAULT_WINDOW_MONTHS = 3


@dataclass(frozen=True)
class SyncConfig:
    calendar_id: str
    window_months: int


@dataclass
class Settings:
    terra_user_id: str
    terra_user_name: str
    terra_password: str
    calendar_id: str
    window_months: int
    timezone: ZoneInfo
    google_client_secrets: str
    google_token_file: str
    terra_base_url: str = DEFAULT_BASE_URL
    storage_state_path: str = "storage_state.json"
    ics_file: str = "./tmp/schedule.ics"
    api_sleep_time: float = 0.0
    terra_no_proxy: bool = False

    def sync_config(self) -> SyncConfig:
        return SyncConfig(calendar_id=self.calendar_id, window_months=self.window_months)


def get_timezone() -> ZoneInfo:
    tz_name = os.getenv("TIMEZONE", DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logging.warning("Invalid TIMEZONE %s, falling back to %s", tz_name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def parse_window_months(raw: str) -> int:
    try:
        months = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"DELETE_TERM_MONTH must be an integer, got {raw!r}") from None
    if months <= 0:
        raise ConfigError(f"DELETE_TERM_MONTH must be positive, got {months}")
    return months


def _parse_flag(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_sleep(raw: str) -> float:
    try:
        return max(float(raw), 0.0)
    except ValueError:
        raise ConfigError(f"API_SLEEP_TIME must be a number, got {raw!r}") from None


def get_settings() -> Settings:
    load_dotenv(find_dotenv(usecwd=True))
    settings = Settings(
        terra_user_id=os.getenv("TERRA_USER_ID", ""),
        terra_user_name=os.getenv("TERRA_USER_NAME", ""),
        terra_password=os.getenv("TERRA_PASSWORD", ""),
        calendar_id=os.getenv("CALENDAR_ID", "primary"),
        window_months=parse_window_months(os.getenv("DELETE_TERM_MONTH", str(DEFAULT_WINDOW_MONTHS))),
        timezone=get_timezone(),
        google_client_secrets=os.getenv("GOOGLE_CLIENT_SECRETS", "client_secret.json"),
        google_token_file=os.getenv("GOOGLE_TOKEN_FILE", "token.json"),
        terra_base_url=os.getenv("TERRA_BASE_URL", DEFAULT_BASE_URL),
        storage_state_path=os.getenv("STORAGE_STATE_PATH", "storage_state.json"),
        ics_file=os.getenv("ICS_FILE", "./tmp/schedule.ics"),
        api_sleep_time=_parse_sleep(os.getenv("API_SLEEP_TIME", "0")),
        terra_no_proxy=_parse_flag(os.getenv("TERRA_NO_PROXY", "")),
    )
    if not settings.terra_user_name:
        logging.warning("TERRA_USER_NAME is not set")
    if not settings.terra_password:
        logging.warning("TERRA_PASSWORD is not set")
    return settings
