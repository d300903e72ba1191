"""
Shared fixtures: an isolated relay queue, a fake browser driver and fast timing settings.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.config import settings
from app.services.relay_queue import RelayQueue, RequestKind


class AutoCompletingRelay(RelayQueue):
    """Relay whose client 'answers' every request the moment it is enqueued."""

    def __init__(self, result=None, error=None):
        super().__init__(completed_ttl=0)
        self._result = result
        self._error = error

    def enqueue(self, kind, payload=None):
        request_id = super().enqueue(kind, payload)
        if kind is RequestKind.SCREENSHOT:
            self.complete(request_id, result=self._result, error=self._error)
        else:
            self.complete(request_id, result={}, error=self._error)
        return request_id


@pytest.fixture
def relay():
    return RelayQueue(completed_ttl=0)


@pytest.fixture
def fake_driver(tmp_path):
    driver = MagicMock()
    driver.user_data_dir = tmp_path / "browser-data"
    driver.has_stored_session.return_value = False
    driver.is_open = False
    driver.current_url = None
    driver.run_script = AsyncMock()
    driver.close = AsyncMock()
    driver.ensure_open = AsyncMock()
    driver.goto = AsyncMock()
    return driver


@pytest.fixture(autouse=True)
def fast_timings(monkeypatch):
    monkeypatch.setattr(settings, "TAB_REQUEST_WAIT_SECONDS", 0.0)
    monkeypatch.setattr(settings, "SCREENSHOT_POLL_INTERVAL", 0.0)
    monkeypatch.setattr(settings, "SCREENSHOT_MAX_ATTEMPTS", 3)
    monkeypatch.setattr(settings, "SCRIPT_STEP_DELAY", 0.0)
