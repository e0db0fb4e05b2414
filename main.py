from __future__ import annotations

import argparse
import logging
from datetime import datetime
from functools import partial

from terra_sync.browser import TerraFeedFetcher, read_local_feed
from terra_sync.config import get_settings
from terra_sync.engine import WindowSyncEngine
from terra_sync.errors import ConfigError, TerraSyncError
from terra_sync.feed import parse_feed
from terra_sync.gcal import GoogleCalendarSink, build_service


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync the Terra schedule to Google Calendar")
    parser.add_argument("--months", type=int, default=None, help="Months to replace, overrides DELETE_TERM_MONTH")
    parser.add_argument("--ics-file", type=str, default=None, help="Use a local .ics file instead of downloading")
    parser.add_argument("--headful", action="store_true", help="Open browser headful for captcha/2FA")
    parser.add_argument("--dry-run", action="store_true", help="Show actions without modifying calendar")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        settings = get_settings()
        if args.months is not None:
            if args.months <= 0:
                raise ConfigError(f"--months must be positive, got {args.months}")
            settings.window_months = args.months
        tz = settings.timezone

        if args.ics_file:
            logging.info("Reading schedule from %s", args.ics_file)
            feed = read_local_feed(args.ics_file)
        else:
            feed = TerraFeedFetcher(settings, headful=args.headful).fetch()

        service = build_service(settings.google_client_secrets, settings.google_token_file)
        sink = GoogleCalendarSink(service, settings.calendar_id, tz, sleep_time=settings.api_sleep_time)
        engine = WindowSyncEngine(
            settings.sync_config(),
            sink,
            partial(parse_feed, tz=tz),
            tz=tz,
            dry_run=args.dry_run,
        )
        report = engine.run(datetime.now(tz), feed)
    except TerraSyncError as exc:
        logging.error("Sync aborted (%s): %s", type(exc).__name__, exc)
        return 1

    logging.info(
        "Done: %d deleted, %d delete failures, %d skipped, %d inserted",
        report.deleted,
        report.delete_failed,
        report.skipped,
        report.inserted,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
