"""Ophaalschema per afvalbak en de berekeningen erover.

Alle datumrekening is kalenderrekening in de timezone van het meegegeven
tijdstip. Een ophaaldatum is altijd middernacht van de ophaaldag.
"""
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import DEFAULT_REMINDER_HOURS, now_local
from .models import BinCategory, WeekDay

DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class Pickup:
    """Eén ophaalmoment van een afvalbak."""
    category: BinCategory
    date: datetime


class BinSchedule(BaseModel):
    """Wekelijkse ophaaldagen van één afvalbak.

    Immutable: wijzigingen gaan via PickupSchedule.update_schedule,
    die het hele schema vervangt.
    """
    model_config = ConfigDict(frozen=True)

    category: BinCategory
    pickup_days: frozenset[WeekDay] = frozenset()
    enabled: bool = True

    @property
    def is_active(self) -> bool:
        """Telt dit schema mee? (aan en minstens één ophaaldag)"""
        return self.enabled and bool(self.pickup_days)

    def next_pickup_date(self, moment: Optional[datetime] = None) -> Optional[datetime]:
        """Eerstvolgende ophaaldag ná de dag van `moment`.

        Vandaag telt niet mee, ook als vandaag een ophaaldag is: dan wordt
        het dezelfde weekdag volgende week.
        """
        if not self.is_active:
            return None
        if moment is None:
            moment = now_local()

        today = WeekDay.from_date(moment)
        ordinals = sorted(day.value for day in self.pickup_days)

        offset = None
        for ordinal in ordinals:
            if ordinal > today:
                # Nog deze week
                offset = ordinal - today
                break
        if offset is None:
            # Alle ophaaldagen van deze week zijn geweest: eerste dag volgende week
            offset = ordinals[0] + DAYS_PER_WEEK - today

        target = moment.date() + timedelta(days=offset)
        return datetime.combine(target, time.min, tzinfo=moment.tzinfo)

    def days_until_next_pickup(self, moment: Optional[datetime] = None) -> Optional[int]:
        """Aantal kalenderdagen tot de volgende ophaaldag."""
        if moment is None:
            moment = now_local()
        next_date = self.next_pickup_date(moment)
        if next_date is None:
            return None
        return (next_date.date() - moment.date()).days

    def next_pickup_description(self, moment: Optional[datetime] = None) -> str:
        days = self.days_until_next_pickup(moment)
        if days is None:
            return "Not scheduled"
        if days == 0:
            return "Today"
        if days == 1:
            return "Tomorrow"
        return f"In {days} days"

    def is_pickup_day(self, moment: Optional[datetime] = None) -> bool:
        """Is de dag van `moment` een ophaaldag voor deze bak?"""
        if moment is None:
            moment = now_local()
        return self.is_active and WeekDay.from_date(moment) in self.pickup_days


def _default_bins() -> dict[BinCategory, BinSchedule]:
    return {category: BinSchedule(category=category) for category in BinCategory}


def _default_lead_time() -> timedelta:
    return timedelta(hours=DEFAULT_REMINDER_HOURS)


class PickupSchedule(BaseModel):
    """Ophaalschema voor alle afvalbakken van het huishouden.

    Bevat altijd precies één BinSchedule per BinCategory.
    """
    bins: dict[BinCategory, BinSchedule] = Field(default_factory=_default_bins)
    notifications_enabled: bool = True
    reminder_lead_time: timedelta = Field(default_factory=_default_lead_time)
    last_updated: datetime = Field(default_factory=now_local)

    @model_validator(mode="after")
    def _check_all_categories(self) -> "PickupSchedule":
        missing = [category.value for category in BinCategory if category not in self.bins]
        if missing:
            raise ValueError(f"Geen schema voor: {', '.join(missing)}")
        for category, schedule in self.bins.items():
            if schedule.category != category:
                raise ValueError(f"Schema voor {schedule.category.value} staat onder {category.value}")
        # Vaste volgorde aanhouden (= volgorde van BinCategory)
        self.bins = {category: self.bins[category] for category in BinCategory}
        return self

    def schedule_for(self, category: BinCategory) -> BinSchedule:
        return self.bins[BinCategory(category)]

    def update_schedule(self, category: BinCategory, days: Iterable[WeekDay], enabled: bool = True) -> None:
        """Vervang het schema van één bak in zijn geheel.

        De dict wordt vervangen, niet aangepast: een (ondiepe) kopie van
        het schema deelt anders dezelfde bakken.
        """
        category = BinCategory(category)
        updated = BinSchedule(
            category=category,
            pickup_days=frozenset(WeekDay(day) for day in days),
            enabled=enabled,
        )
        self.bins = {**self.bins, category: updated}
        self.last_updated = now_local()

    def enabled_schedules(self) -> list[BinSchedule]:
        """Alle schema's die aan staan en minstens één ophaaldag hebben."""
        return [schedule for schedule in self.bins.values() if schedule.is_active]

    def next_pickup(self, moment: Optional[datetime] = None) -> Optional[Pickup]:
        """Eerstvolgende ophaling over alle bakken.

        Bij gelijke datum wint de eerste bak in BinCategory volgorde.
        """
        if moment is None:
            moment = now_local()

        nearest = None
        for schedule in self.enabled_schedules():
            next_date = schedule.next_pickup_date(moment)
            if next_date is None:
                continue
            if nearest is None or next_date < nearest.date:
                nearest = Pickup(schedule.category, next_date)
        return nearest

    def upcoming_pickups(self, days_ahead: int = 7, moment: Optional[datetime] = None) -> list[Pickup]:
        """Alle ophalingen van alle bakken tot en met `moment + days_ahead`.

        Gesorteerd op datum, bij gelijke datum op BinCategory volgorde.
        """
        if moment is None:
            moment = now_local()
        end = moment + timedelta(days=days_ahead)
        order = {category: index for index, category in enumerate(BinCategory)}

        pickups = []
        for schedule in self.enabled_schedules():
            cursor = moment
            while True:
                next_date = schedule.next_pickup_date(cursor)
                if next_date is None or next_date > end:
                    break
                pickups.append(Pickup(schedule.category, next_date))
                # next_pickup_date slaat de dag van de cursor zelf over,
                # dus verder zoeken vanaf de gevonden ophaaldag
                cursor = next_date

        return sorted(pickups, key=lambda p: (p.date, order[p.category]))

    def today_pickups(self, moment: Optional[datetime] = None) -> list[BinCategory]:
        """Welke bakken moeten vandaag aan de straat?"""
        if moment is None:
            moment = now_local()
        return [s.category for s in self.enabled_schedules() if s.is_pickup_day(moment)]

    def has_pickup_today(self, moment: Optional[datetime] = None) -> bool:
        return bool(self.today_pickups(moment))

    def scheduled_categories(self) -> list[BinCategory]:
        return [schedule.category for schedule in self.enabled_schedules()]

    def enabled_bin_count(self) -> int:
        return len(self.enabled_schedules())

    def is_bin_scheduled(self, category: BinCategory) -> bool:
        return self.schedule_for(category).is_active
