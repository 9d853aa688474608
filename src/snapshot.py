"""Opslagformaat van het ophaalschema, de puntenadministratie en de gescande items.

Formaat (JSON):
    {
        "bins": {
            "general": {
                "enabled": true,
                "days": [2, 5],
                "stats": {"completed": 3, "missed": 1, "streak": 2,
                          "bestStreak": 2, "points": 30, "lastDate": "..."}
            },
            ...
        },
        "notificationsEnabled": true,
        "reminderLeadTimeSeconds": 43200,
        "lastUpdated": "2026-01-19T12:00:00+11:00",
        "pendingItems": [{"id": "...", "type": "plastic", "scannedDate": "...", "isCollected": false}],
        "pickupHistory": [{"id": "...", "category": "general", "pickupDate": "...",
                           "collectedItems": [...], "pointsAwarded": 25, "timestamp": "..."}]
    }

Elke bak en elk item wordt los gecontroleerd: één kapot record kost
alleen dat record, niet de hele opgeslagen toestand.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import DEFAULT_REMINDER_HOURS, now_local
from .models import (
    BinCategory, CompletionStats, PickupEvent, RecyclableItem, RecyclableType, RecyclingLedger, WeekDay
)
from .schedule import BinSchedule, PickupSchedule

logger = logging.getLogger(__name__)


class StatsRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completed: int = 0
    missed: int = 0
    streak: int = 0
    best_streak: int = Field(0, alias="bestStreak")
    points: int = 0
    last_date: Optional[datetime] = Field(None, alias="lastDate")


class BinRecord(BaseModel):
    enabled: bool = False
    days: list[Any] = Field(default_factory=list)
    stats: Any = None


class ItemRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: RecyclableType
    scanned_date: datetime = Field(alias="scannedDate")
    is_collected: bool = Field(False, alias="isCollected")


class PickupEventRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    category: Optional[BinCategory] = None
    pickup_date: datetime = Field(alias="pickupDate")
    collected_items: list[ItemRecord] = Field(default_factory=list, alias="collectedItems")
    points_awarded: int = Field(0, alias="pointsAwarded")
    timestamp: datetime


class ScheduleSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bins: dict[str, Any] = Field(default_factory=dict)
    notifications_enabled: bool = Field(True, alias="notificationsEnabled")
    reminder_lead_time_seconds: float = Field(
        DEFAULT_REMINDER_HOURS * 3600, alias="reminderLeadTimeSeconds"
    )
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")
    pending_items: Any = Field(None, alias="pendingItems")
    pickup_history: Any = Field(None, alias="pickupHistory")


def _dump(record: BaseModel) -> dict:
    return record.model_dump(mode="json", by_alias=True)


def _item_record(item: RecyclableItem) -> ItemRecord:
    return ItemRecord(id=item.id, type=item.type, scanned_date=item.scanned_date, is_collected=item.is_collected)


def build_snapshot(
    schedule: PickupSchedule,
    stats: dict[BinCategory, CompletionStats],
    ledger: Optional[RecyclingLedger] = None
) -> dict:
    """Zet schema + statistieken (+ gescande items) om naar het opslagformaat."""
    if ledger is None:
        ledger = RecyclingLedger()

    bins = {}
    for category, bin_schedule in schedule.bins.items():
        bin_stats = stats.get(category) or CompletionStats()
        bins[category.value] = _dump(BinRecord(
            enabled=bin_schedule.enabled,
            days=sorted(day.value for day in bin_schedule.pickup_days),
            stats=_dump(StatsRecord(
                completed=bin_stats.completed_count,
                missed=bin_stats.missed_count,
                streak=bin_stats.current_streak,
                best_streak=bin_stats.best_streak,
                points=bin_stats.total_points_earned,
                last_date=bin_stats.last_completion_date,
            )),
        ))

    snapshot = ScheduleSnapshot(
        bins=bins,
        notifications_enabled=schedule.notifications_enabled,
        reminder_lead_time_seconds=schedule.reminder_lead_time.total_seconds(),
        last_updated=schedule.last_updated,
        pending_items=[_dump(_item_record(item)) for item in ledger.pending_items],
        pickup_history=[_dump(PickupEventRecord(
            id=event.id,
            category=event.category,
            pickup_date=event.pickup_date,
            collected_items=[_item_record(item) for item in event.collected_items],
            points_awarded=event.points_awarded,
            timestamp=event.timestamp,
        )) for event in ledger.pickup_history],
    )
    return snapshot.model_dump(mode="json", by_alias=True)


def _default_state() -> tuple[PickupSchedule, dict[BinCategory, CompletionStats]]:
    return PickupSchedule(), {category: CompletionStats() for category in BinCategory}


def _read_snapshot(data: Any) -> Optional[ScheduleSnapshot]:
    if not data:
        return None
    try:
        return ScheduleSnapshot.model_validate(data)
    except ValidationError as e:
        logger.error("Opgeslagen toestand onleesbaar, standaardwaarden gebruikt: %s", e)
        return None


def restore_snapshot(data: Optional[dict]) -> tuple[PickupSchedule, dict[BinCategory, CompletionStats]]:
    """Lees het opslagformaat terug en repareer wat er mis is.

    - ontbrekende of onleesbare bak: leeg schema dat uit staat, nieuwe statistieken
    - kleurnamen als sleutel ("red") worden omgezet naar de categorie
    - onbekende bakken en ongeldige dagen worden overgeslagen
    - onleesbare statistieken worden nieuwe statistieken
    """
    snapshot = _read_snapshot(data)
    if snapshot is None:
        # Nog niets (bruikbaars) opgeslagen: standaard schema
        return _default_state()

    bins = {}
    stats = {}
    for key, value in snapshot.bins.items():
        try:
            category = BinCategory(key)
        except ValueError:
            logger.warning("Onbekende afvalbak %r in opgeslagen schema, overgeslagen", key)
            continue

        try:
            record = BinRecord.model_validate(value)
        except ValidationError:
            logger.warning("Ongeldig opgeslagen schema voor %s: %r, overgeslagen", category.value, value)
            continue

        bins[category] = BinSchedule(
            category=category,
            pickup_days=frozenset(_restore_days(category, record.days)),
            enabled=record.enabled,
        )
        stats[category] = _restore_stats(category, record.stats)

    for category in BinCategory:
        if category not in bins:
            logger.warning("Geen opgeslagen schema voor %s, leeg schema aangemaakt", category.value)
            bins[category] = BinSchedule(category=category, enabled=False)
            stats[category] = CompletionStats()

    schedule = PickupSchedule(
        bins=bins,
        notifications_enabled=snapshot.notifications_enabled,
        reminder_lead_time=timedelta(seconds=snapshot.reminder_lead_time_seconds),
        last_updated=snapshot.last_updated or now_local(),
    )
    return schedule, stats


def _restore_days(category: BinCategory, values: list) -> set[WeekDay]:
    days = set()
    for value in values:
        # Alleen echte ordinals; True is ook een int
        if isinstance(value, bool) or not isinstance(value, int):
            logger.warning("Ongeldige ophaaldag %r voor %s, overgeslagen", value, category.value)
            continue
        try:
            days.add(WeekDay(value))
        except ValueError:
            logger.warning("Ongeldige ophaaldag %r voor %s, overgeslagen", value, category.value)
    return days


def _restore_stats(category: BinCategory, value: Any) -> CompletionStats:
    if value is None:
        return CompletionStats()
    try:
        record = StatsRecord.model_validate(value)
    except ValidationError:
        logger.warning("Ongeldige statistieken voor %s, opnieuw begonnen", category.value)
        return CompletionStats()

    best_streak = record.best_streak
    if best_streak < record.streak:
        logger.warning("bestStreak < streak voor %s, gecorrigeerd", category.value)
        best_streak = record.streak

    return CompletionStats(
        completed_count=record.completed,
        missed_count=record.missed,
        current_streak=record.streak,
        best_streak=best_streak,
        total_points_earned=record.points,
        last_completion_date=record.last_date,
    )


def _valid_records(values: Any, record_type: type[BaseModel], label: str) -> list:
    if values is None:
        return []
    if not isinstance(values, list):
        logger.warning("%s is geen lijst, genegeerd", label)
        return []

    records = []
    for value in values:
        try:
            records.append(record_type.model_validate(value))
        except ValidationError:
            logger.warning("Ongeldig record in %s overgeslagen: %r", label, value)
    return records


def _item_from_record(record: ItemRecord) -> RecyclableItem:
    return RecyclableItem(
        id=record.id,
        type=record.type,
        scanned_date=record.scanned_date,
        is_collected=record.is_collected,
    )


def restore_ledger(data: Optional[dict]) -> RecyclingLedger:
    """Lees de wachtende items en de ophaalgeschiedenis terug (kapotte records vallen weg)."""
    snapshot = _read_snapshot(data)
    if snapshot is None:
        return RecyclingLedger()

    pending = _valid_records(snapshot.pending_items, ItemRecord, "pendingItems")
    history = _valid_records(snapshot.pickup_history, PickupEventRecord, "pickupHistory")
    return RecyclingLedger(
        pending_items=[_item_from_record(record) for record in pending],
        pickup_history=[PickupEvent(
            id=record.id,
            category=record.category,
            pickup_date=record.pickup_date,
            collected_items=[_item_from_record(item) for item in record.collected_items],
            points_awarded=record.points_awarded,
            timestamp=record.timestamp,
        ) for record in history],
    )
