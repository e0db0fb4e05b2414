from __future__ import annotations

import pytest

from fakes import FakeSink
from terra_sync.config import SyncConfig


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def sync_config():
    return SyncConfig(calendar_id="primary", window_months=3)
