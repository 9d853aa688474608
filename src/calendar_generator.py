"""iCal generator voor de ophaaldagen."""
from datetime import datetime, timedelta
from typing import Optional
from icalendar import Calendar, Event, Alarm

from .config import TIMEZONE_NAME
from .schedule import Pickup

# App URL voor links in kalender events
APP_URL = "https://recycloscan.app/schedule"


def generate_ical(pickups: list[Pickup], lead_time: Optional[timedelta] = None,
                  calendar_name: str = None) -> Calendar:
    """
    Genereer een iCal calendar met de komende ophaaldagen.

    Args:
        pickups: Ophalingen, bijv. uit PickupSchedule.upcoming_pickups()
        lead_time: Optioneel - herinnering zoveel voor de ophaaldag
        calendar_name: Optioneel - aangepaste kalendernaam

    Returns:
        icalendar.Calendar object
    """
    cal = Calendar()
    cal.add('prodid', '-//RecycloScan//Bin Pickups//EN')
    cal.add('version', '2.0')
    cal.add('x-wr-calname', calendar_name or 'Bin Collection')
    cal.add('x-wr-timezone', TIMEZONE_NAME)

    for pickup in pickups:
        category = pickup.category
        pickup_day = pickup.date.date()

        event = Event()
        event.add('summary', f"{category.display_name} - {category.waste_type}")

        # Hele dag event
        event.add('dtstart', pickup_day)
        event.add('dtend', pickup_day + timedelta(days=1))
        event.add('description', f'{category.description}\n\nBekijk het schema: {APP_URL}')

        # Format: YYYY-MM-DD-categorie@recycloscan
        event.add('uid', f"{pickup_day.isoformat()}-{category.value}@recycloscan")
        event.add('dtstamp', datetime.now())

        # Niet als "busy" tonen in kalender
        event.add('transp', 'TRANSPARENT')

        if lead_time is not None:
            alarm = Alarm()
            alarm.add('action', 'DISPLAY')
            alarm.add('description', f'Put out your {category.display_name.lower()}')
            alarm.add('trigger', -lead_time)
            event.add_component(alarm)

        cal.add_component(event)

    return cal
