from datetime import datetime, timedelta

import pytest

from vocabflow.application.ledger import ProgressLedger
from vocabflow.infrastructure.adapters.storage import InMemoryStorage

NOW = datetime(2026, 3, 15, 9, 30)


class FakeClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def ledger(storage, clock):
    return ProgressLedger(storage, clock=clock)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home
