"""Configuratie voor de RecycloScan pickup service (environment variables)."""
import os
from datetime import datetime
from zoneinfo import ZoneInfo
from dotenv import load_dotenv

# Lokaal: .env bestand in de project root, op de server gewoon environment variables
load_dotenv()

# API Key voor authenticatie
API_KEY = os.getenv("API_KEY", "recycloscan-dev-secret-key")

# Timezone van het huishouden; alle datumrekening gebeurt in deze kalender
TIMEZONE_NAME = os.getenv("TIMEZONE", "Australia/Sydney")
TIMEZONE = ZoneInfo(TIMEZONE_NAME)

# Hoeveel uur voor de ophaaldag de herinnering komt
DEFAULT_REMINDER_HOURS = float(os.getenv("DEFAULT_REMINDER_HOURS", "12"))

# Hoeveel dagen vooruit herinneringen worden gepland
REMINDER_DAYS_AHEAD = int(os.getenv("REMINDER_DAYS_AHEAD", "14"))

# VAPID keys voor web push
VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY", "")
VAPID_PUBLIC_KEY = os.getenv("VAPID_PUBLIC_KEY", "")
VAPID_CLAIMS_EMAIL = os.getenv("VAPID_CLAIMS_EMAIL", "mailto:admin@example.com")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 8080))


def now_local() -> datetime:
    """Geef huidige tijd in lokale timezone."""
    return datetime.now(TIMEZONE)
