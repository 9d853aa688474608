"""
Tests voor de iCal export van de ophaaldagen.
"""
from datetime import date, timedelta

from src.calendar_generator import generate_ical
from src.models import BinCategory
from src.schedule import Pickup
from tests.conftest import midnight


def events(cal):
    return cal.walk("VEVENT")


class TestGenerateIcal:

    def test_one_event_per_pickup(self, sample_schedule):
        pickups = sample_schedule.upcoming_pickups(7, midnight(18))
        cal = generate_ical(pickups)
        assert len(events(cal)) == len(pickups) == 6

    def test_all_day_event(self):
        cal = generate_ical([Pickup(BinCategory.RED, midnight(19))])
        event = events(cal)[0]

        assert str(event["summary"]) == "Red Bin - General Waste"
        assert event.decoded("dtstart") == date(2026, 1, 19)
        assert event.decoded("dtend") == date(2026, 1, 20)
        assert str(event["uid"]) == "2026-01-19-general@recycloscan"
        assert str(event["transp"]) == "TRANSPARENT"

    def test_alarm_uses_lead_time(self):
        cal = generate_ical([Pickup(BinCategory.BLUE, midnight(20))], lead_time=timedelta(hours=12))
        alarms = events(cal)[0].walk("VALARM")

        assert len(alarms) == 1
        assert alarms[0].decoded("trigger") == timedelta(hours=-12)

    def test_no_alarm_without_lead_time(self):
        cal = generate_ical([Pickup(BinCategory.GREEN, midnight(23))])
        assert events(cal)[0].walk("VALARM") == []

    def test_calendar_name(self):
        cal = generate_ical([], calendar_name="Afval")
        assert str(cal["x-wr-calname"]) == "Afval"
        assert b"BEGIN:VCALENDAR" in cal.to_ical()
