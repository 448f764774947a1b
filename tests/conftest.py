from datetime import datetime, timedelta, timezone
from random import Random

import pytest

from ledgerforge.testing.fixtures import app_fixture, memory_app  # noqa: F401


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def app(clock):
    return app_fixture(clock=clock, rng=Random(7))
