from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from .config import get_timezone
from .errors import ConfigError
from .models import Window
from .utils import localize


def compute_window(now: datetime, month_span: int, tz: Optional[tzinfo] = None) -> Window:
    """Window covering ``month_span`` whole calendar months from ``now``'s month.

    Starts at 00:00:00 on day 1 of the current month and ends at 23:59:59 on
    the last day of the final month, both in ``tz``.
    """
    if isinstance(month_span, bool) or not isinstance(month_span, int) or month_span <= 0:
        raise ConfigError(f"Window span must be a positive number of months, got {month_span!r}")

    if tz is None:
        tz = now.tzinfo or get_timezone()
    now = localize(now, tz)

    start = datetime(now.year, now.month, 1, tzinfo=tz)
    years, month_index = divmod(now.month - 1 + month_span, 12)
    end = datetime(now.year + years, month_index + 1, 1, 23, 59, 59, tzinfo=tz) - timedelta(days=1)

    logging.info("Sync window from %s to %s", start.isoformat(), end.isoformat())
    return Window(start=start, end=end)
