"""
Pytest fixtures voor het testen van het ophaalschema.

Deze fixtures maken het mogelijk om de engine te testen ZONDER database
en met een vaste klok, zodat tests deterministisch en reproduceerbaar zijn.
"""
import pytest
from contextlib import ExitStack
from datetime import datetime, timedelta
from unittest.mock import patch
from zoneinfo import ZoneInfo

from src.database import InMemoryRepository
from src.models import BinCategory, WeekDay
from src.schedule import PickupSchedule

TZ = ZoneInfo("Europe/Amsterdam")

# Modules die now_local() importeren
CLOCK_TARGETS = [
    "src.config.now_local",
    "src.models.now_local",
    "src.schedule.now_local",
    "src.snapshot.now_local",
    "src.reminders.now_local",
    "src.pickup_engine.now_local",
]


def local(day: int, hour: int = 12, minute: int = 0, month: int = 1, year: int = 2026) -> datetime:
    """Tijdstip in januari 2026 (19 januari is een maandag)."""
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


def midnight(day: int, month: int = 1, year: int = 2026) -> datetime:
    return local(day, 0, 0, month, year)


# === VASTE MOMENTEN ===

@pytest.fixture
def sunday() -> datetime:
    return local(18)


@pytest.fixture
def monday() -> datetime:
    return local(19)


@pytest.fixture
def tuesday() -> datetime:
    return local(20)


@pytest.fixture
def wednesday() -> datetime:
    return local(21)


# === SCHEMA'S ===

@pytest.fixture
def sample_schedule() -> PickupSchedule:
    """Het voorbeeldschema: rood ma+do, geel wo, blauw di+vr, groen vr."""
    schedule = PickupSchedule()
    schedule.update_schedule(BinCategory.RED, [WeekDay.MONDAY, WeekDay.THURSDAY])
    schedule.update_schedule(BinCategory.YELLOW, [WeekDay.WEDNESDAY])
    schedule.update_schedule(BinCategory.BLUE, [WeekDay.TUESDAY, WeekDay.FRIDAY])
    schedule.update_schedule(BinCategory.GREEN, [WeekDay.FRIDAY])
    return schedule


# === MOCK KLOK ===

class MockClock:
    """Configureerbare "huidige tijd" voor tests."""

    def __init__(self, current: datetime):
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, moment: datetime):
        self._current = moment

    def advance_days(self, days: int):
        """Ga N dagen vooruit in de tijd."""
        self._current += timedelta(days=days)


@pytest.fixture
def clock():
    """Klok die op maandag 19 januari 2026 12:00 staat, overal gepatcht."""
    mock_clock = MockClock(local(19))
    with ExitStack() as stack:
        for target in CLOCK_TARGETS:
            stack.enter_context(patch(target, mock_clock.now))
        yield mock_clock


@pytest.fixture
def repository() -> InMemoryRepository:
    """Verse in-memory opslag."""
    return InMemoryRepository()


@pytest.fixture
def engine(repository, clock):
    """Een PickupEngine op in-memory opslag met vaste klok."""
    from src.pickup_engine import PickupEngine
    return PickupEngine(repository)


@pytest.fixture
def api_client(engine):
    """FastAPI TestClient die de test-engine gebruikt."""
    from fastapi.testclient import TestClient
    from src import config
    from src.main import app, get_engine

    app.dependency_overrides[get_engine] = lambda: engine
    client = TestClient(app)
    client.headers.update({"Authorization": f"Bearer {config.API_KEY}"})
    yield client
    app.dependency_overrides.clear()
