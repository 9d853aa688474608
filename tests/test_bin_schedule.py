"""
Tests voor de datumrekening van één afvalbak.

De lastige gevallen:
1. Week-wrap: alle ophaaldagen van deze week zijn al geweest
2. Vandaag is een ophaaldag: "volgende" is dan pas volgende week
3. Uitgeschakeld of geen dagen: geen resultaat, geen fout
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import patch
from zoneinfo import ZoneInfo
from pydantic import ValidationError

from src.models import BinCategory, WeekDay
from src.schedule import BinSchedule
from tests.conftest import local, midnight


def make_bin(*days, enabled=True, category=BinCategory.GENERAL) -> BinSchedule:
    return BinSchedule(category=category, pickup_days=frozenset(days), enabled=enabled)


class TestWeekDay:
    """Weekdag nummering: 1=zondag t/m 7=zaterdag."""

    def test_sunday_is_one_and_saturday_is_seven(self):
        assert WeekDay.from_date(local(18)) == WeekDay.SUNDAY == 1
        assert WeekDay.from_date(local(19)) == WeekDay.MONDAY == 2
        assert WeekDay.from_date(local(24)) == WeekDay.SATURDAY == 7

    def test_works_for_plain_dates(self):
        assert WeekDay.from_date(local(21).date()) == WeekDay.WEDNESDAY

    def test_names(self):
        assert WeekDay.THURSDAY.full_name == "Thursday"
        assert WeekDay.THURSDAY.short_name == "T"


class TestNoNextPickup:
    """Geen volgende ophaling: None, nooit een exception."""

    def test_disabled_schedule_returns_none(self, monday):
        schedule = make_bin(WeekDay.MONDAY, WeekDay.WEDNESDAY, WeekDay.FRIDAY, enabled=False)
        assert schedule.next_pickup_date(monday) is None
        assert schedule.days_until_next_pickup(monday) is None

    def test_empty_days_returns_none_even_when_enabled(self, monday):
        schedule = make_bin(enabled=True)
        assert schedule.next_pickup_date(monday) is None

    def test_empty_and_disabled_returns_none(self, monday):
        assert make_bin(enabled=False).next_pickup_date(monday) is None

    def test_description_not_scheduled(self, monday):
        assert make_bin().next_pickup_description(monday) == "Not scheduled"


class TestNextPickupDate:
    """Volgende ophaaldag binnen de week en over de weekgrens heen."""

    def test_later_this_week(self, monday):
        schedule = make_bin(WeekDay.THURSDAY)
        assert schedule.next_pickup_date(monday) == midnight(22)

    def test_week_wrap_monday_from_tuesday(self, tuesday):
        """Alleen maandag, vandaag dinsdag: maandag volgende week, 6 dagen later."""
        schedule = make_bin(WeekDay.MONDAY)
        next_date = schedule.next_pickup_date(tuesday)

        assert next_date == midnight(26)
        assert schedule.days_until_next_pickup(tuesday) == 6

    def test_same_day_is_not_next(self, monday):
        """Vandaag is ophaaldag: volgende is pas over een week."""
        schedule = make_bin(WeekDay.MONDAY)
        assert schedule.next_pickup_date(monday) == midnight(26)
        assert schedule.days_until_next_pickup(monday) == 7

    def test_same_day_skips_to_later_day_in_week(self, monday):
        schedule = make_bin(WeekDay.MONDAY, WeekDay.THURSDAY)
        assert schedule.next_pickup_date(monday) == midnight(22)

    def test_same_day_excluded_even_just_after_midnight(self):
        schedule = make_bin(WeekDay.MONDAY)
        assert schedule.next_pickup_date(local(19, 0, 0)) == midnight(26)

    def test_saturday_wraps_to_sunday(self):
        """Zaterdag is de laatste dag van de week; zondag is de eerste van de volgende."""
        schedule = make_bin(WeekDay.SUNDAY, WeekDay.FRIDAY)
        saturday = local(24)
        assert schedule.next_pickup_date(saturday) == midnight(25)
        assert schedule.days_until_next_pickup(saturday) == 1

    def test_earliest_day_used_after_wrap(self):
        schedule = make_bin(WeekDay.FRIDAY, WeekDay.TUESDAY, WeekDay.WEDNESDAY)
        saturday = local(24)
        assert schedule.next_pickup_date(saturday) == midnight(27)

    def test_crosses_month_boundary(self):
        schedule = make_bin(WeekDay.MONDAY)
        assert schedule.next_pickup_date(local(30)) == midnight(2, month=2)

    def test_result_is_midnight_in_same_timezone(self, wednesday):
        next_date = make_bin(WeekDay.FRIDAY).next_pickup_date(wednesday)
        assert (next_date.hour, next_date.minute, next_date.second) == (0, 0, 0)
        assert next_date.tzinfo == wednesday.tzinfo

    def test_always_strictly_after_reference(self):
        """Voor elke startdag en elk schema ligt de volgende ophaling na het startmoment."""
        day_sets = [
            {WeekDay.SUNDAY},
            {WeekDay.SATURDAY},
            {WeekDay.MONDAY, WeekDay.THURSDAY},
            set(WeekDay),
        ]
        for days in day_sets:
            schedule = make_bin(*days)
            for day in range(18, 25):
                for hour in (0, 12, 23):
                    moment = local(day, hour)
                    next_date = schedule.next_pickup_date(moment)
                    assert next_date > moment
                    assert next_date.date() != moment.date()
                    assert 1 <= (next_date.date() - moment.date()).days <= 7

    def test_every_day_schedule_is_always_tomorrow(self):
        schedule = make_bin(*WeekDay)
        for day in range(18, 25):
            assert schedule.days_until_next_pickup(local(day)) == 1

    def test_dst_change_keeps_calendar_days(self):
        """Zomertijd eindigt in Sydney op zondag 5 april 2026."""
        sydney = ZoneInfo("Australia/Sydney")
        saturday = datetime(2026, 4, 4, 12, 0, tzinfo=sydney)
        schedule = make_bin(WeekDay.MONDAY)

        next_date = schedule.next_pickup_date(saturday)

        assert next_date == datetime(2026, 4, 6, 0, 0, tzinfo=sydney)
        assert next_date.hour == 0
        assert schedule.days_until_next_pickup(saturday) == 2


class TestDaysUntilAndDescription:
    """Dagen tot de volgende ophaling en de tekst daarvoor."""

    def test_late_evening_before_pickup_is_tomorrow(self):
        """Om 23:30 op de avond ervoor is het morgen, ook al is het nog maar 30 minuten."""
        schedule = make_bin(WeekDay.THURSDAY)
        late_wednesday = local(21, 23, 30)
        assert schedule.days_until_next_pickup(late_wednesday) == 1
        assert schedule.next_pickup_description(late_wednesday) == "Tomorrow"

    def test_in_n_days(self, monday):
        assert make_bin(WeekDay.THURSDAY).next_pickup_description(monday) == "In 3 days"

    def test_today_text(self, monday):
        schedule = make_bin(WeekDay.MONDAY)
        with patch.object(BinSchedule, "days_until_next_pickup", return_value=0):
            assert schedule.next_pickup_description(monday) == "Today"


class TestIsPickupDay:
    """Is vandaag een ophaaldag?"""

    def test_scheduled_weekday(self, wednesday):
        assert make_bin(WeekDay.WEDNESDAY).is_pickup_day(wednesday)

    def test_other_weekday(self, tuesday):
        assert not make_bin(WeekDay.WEDNESDAY).is_pickup_day(tuesday)

    def test_disabled_is_never_pickup_day(self, wednesday):
        assert not make_bin(WeekDay.WEDNESDAY, enabled=False).is_pickup_day(wednesday)


class TestBinScheduleModel:
    """Het model zelf."""

    def test_defaults(self):
        schedule = BinSchedule(category=BinCategory.PAPER_CARDBOARD)
        assert schedule.enabled is True
        assert schedule.pickup_days == frozenset()
        assert not schedule.is_active

    def test_days_are_a_set(self):
        schedule = BinSchedule(category=BinCategory.GENERAL, pickup_days=[2, 2, 5])
        assert schedule.pickup_days == {WeekDay.MONDAY, WeekDay.THURSDAY}

    def test_is_immutable(self):
        schedule = make_bin(WeekDay.MONDAY)
        with pytest.raises(ValidationError):
            schedule.enabled = False

    def test_invalid_day_rejected(self):
        with pytest.raises(ValidationError):
            BinSchedule(category=BinCategory.GENERAL, pickup_days=[8])
