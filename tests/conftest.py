from datetime import datetime, timedelta, timezone

import pytest

from clipkeep.config import AppConfig
from clipkeep.storage import HistoryStore

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock: each call returns a time one second later."""

    def __init__(self, start: datetime = T0):
        self.current = start - timedelta(seconds=1)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "clipboard.db"


@pytest.fixture
def store(db_path, clock):
    return HistoryStore(db_path, timeout=1.0, clock=clock)


@pytest.fixture
def config(tmp_path):
    cfg = AppConfig(data_dir=tmp_path / "data")
    cfg.image_dir.mkdir(parents=True)
    return cfg
