"""Herinneringen voor het buitenzetten van de afvalbakken.

Berekent alleen wanneer en wat; het versturen gebeurt in push_notifications.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .config import REMINDER_DAYS_AHEAD, now_local
from .models import BinCategory, WeekDay
from .schedule import PickupSchedule


@dataclass(frozen=True)
class BinReminder:
    """Herinnering voor één ophaling."""
    category: BinCategory
    pickup_date: datetime
    remind_at: datetime
    title: str
    message: str

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "bin": self.category.display_name,
            "pickup_date": self.pickup_date.isoformat(),
            "remind_at": self.remind_at.isoformat(),
            "title": self.title,
            "message": self.message,
        }


def _when_text(remind_at: datetime, pickup_date: datetime) -> str:
    days = (pickup_date.date() - remind_at.date()).days
    if days <= 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    return f"on {WeekDay.from_date(pickup_date).full_name}"


def _utc(moment: datetime) -> datetime:
    return moment.astimezone(timezone.utc)


def build_reminder(category: BinCategory, pickup_date: datetime, lead_time: timedelta) -> BinReminder:
    # In UTC rekenen: rond een zomertijdwissel is 12 uur eerder anders geen 12 uur
    remind_at = (_utc(pickup_date) - lead_time).astimezone(pickup_date.tzinfo)
    title = f"{category.display_name} Collection {_when_text(remind_at, pickup_date)}"
    message = (
        f"Don't forget to put out your {category.display_name.lower()} "
        f"({category.waste_type.lower()})!"
    )
    return BinReminder(category, pickup_date, remind_at, title, message)


def plan_reminders(
    schedule: PickupSchedule,
    moment: Optional[datetime] = None,
    days_ahead: int = REMINDER_DAYS_AHEAD
) -> list[BinReminder]:
    """Alle herinneringen voor de ophalingen in de komende `days_ahead` dagen.

    Herinneringen die al voorbij zijn worden overgeslagen.
    Geen herinneringen als notificaties uit staan.
    """
    if not schedule.notifications_enabled:
        return []
    if moment is None:
        moment = now_local()

    reminders = []
    for pickup in schedule.upcoming_pickups(days_ahead, moment):
        reminder = build_reminder(pickup.category, pickup.date, schedule.reminder_lead_time)
        if _utc(reminder.remind_at) <= _utc(moment):
            continue
        reminders.append(reminder)
    return reminders


def due_reminders(
    schedule: PickupSchedule,
    moment: Optional[datetime] = None,
    window: timedelta = timedelta(hours=1)
) -> list[BinReminder]:
    """Herinneringen die in het afgelopen `window` verstuurd hadden moeten worden.

    Bedoeld voor een cron job die elk `window` draait: elke herinnering
    valt dan in precies één run.
    """
    if not schedule.notifications_enabled:
        return []
    if moment is None:
        moment = now_local()

    # upcoming_pickups slaat de startdag over, dus een dag eerder beginnen
    start = moment - window - timedelta(days=1)
    horizon_days = (schedule.reminder_lead_time + window).days + 2
    # Vergelijken in UTC: in het dubbele uur bij het terugzetten van de klok
    # zijn twee verschillende momenten op de wandklok gelijk
    end = _utc(moment)
    reminders = []
    for pickup in schedule.upcoming_pickups(horizon_days, start):
        reminder = build_reminder(pickup.category, pickup.date, schedule.reminder_lead_time)
        if end - window < _utc(reminder.remind_at) <= end:
            reminders.append(reminder)
    return reminders
