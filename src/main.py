"""FastAPI app voor de RecycloScan pickup service."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response
from pydantic import BaseModel, Field, field_validator

from . import config
from .calendar_generator import generate_ical
from .database import DATABASE_URL, add_push_subscription, init_db
from .models import BinCategory, CompletionStats, PickupEvent, RecyclableItem, RecyclableType, WeekDay
from . import pickup_engine
from .pickup_engine import PickupEngine
from .push_notifications import get_vapid_public_key
from .schedule import BinSchedule, Pickup

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="RecycloScan Pickup Service",
    description="Ophaalschema, herinneringen en punten voor het afval scheiden",
    version="1.0.0"
)


async def verify_api_key(authorization: Optional[str] = Header(None)):
    """Verifieer de API key uit de Authorization header."""
    if authorization is None:
        raise HTTPException(status_code=401, detail="API key required")

    # Verwacht "Bearer <api_key>" format
    if authorization.startswith("Bearer "):
        token = authorization[7:]
    else:
        token = authorization

    if token != config.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")

    return token


def get_engine() -> PickupEngine:
    return pickup_engine.engine


def parse_category(category: str) -> BinCategory:
    try:
        return BinCategory(category)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Afvalbak '{category}' niet gevonden")


# Startup event
@app.on_event("startup")
async def startup():
    """Maak de tabellen aan als er een database is."""
    if not DATABASE_URL:
        return
    try:
        init_db()
    except Exception as e:
        logger.error("Database init error (might be OK on first run): %s", e)


# Health check
@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# === Request models ===

class ScheduleUpdateRequest(BaseModel):
    days: list[WeekDay]
    enabled: bool = True

    @field_validator("days", mode="before")
    @classmethod
    def parse_day_names(cls, value):
        # Zowel [2, 5] als ["monday", "thursday"]
        if not isinstance(value, list):
            return value
        days = []
        for day in value:
            if isinstance(day, str) and day.strip().isdigit():
                day = int(day)
            elif isinstance(day, str):
                try:
                    day = WeekDay[day.strip().upper()]
                except KeyError:
                    raise ValueError(f"Onbekende dag '{day}'")
            days.append(day)
        return days


class NotificationsRequest(BaseModel):
    enabled: bool


class ReminderTimeRequest(BaseModel):
    hours: float = Field(ge=0, le=24 * 7)


class CompletionRequest(BaseModel):
    points: int = Field(0, ge=0)
    items: Optional[list[RecyclableType]] = None


class ScannedItemRequest(BaseModel):
    type: RecyclableType


class PushKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscribeRequest(BaseModel):
    endpoint: str
    keys: PushKeys


# === Response helpers ===

def pickup_to_dict(pickup: Pickup) -> dict:
    return {
        "category": pickup.category.value,
        "bin": pickup.category.display_name,
        "waste_type": pickup.category.waste_type,
        "date": pickup.date.isoformat(),
        "day": WeekDay.from_date(pickup.date).full_name,
    }


def bin_to_dict(schedule: BinSchedule, moment: datetime) -> dict:
    next_date = schedule.next_pickup_date(moment)
    return {
        "category": schedule.category.value,
        "bin": schedule.category.display_name,
        "color": schedule.category.color,
        "waste_type": schedule.category.waste_type,
        "enabled": schedule.enabled,
        "days": sorted(day.value for day in schedule.pickup_days),
        "day_names": [day.full_name for day in sorted(schedule.pickup_days)],
        "next_pickup": next_date.isoformat() if next_date else None,
        "next_pickup_text": schedule.next_pickup_description(moment),
    }


def stats_to_dict(category: BinCategory, stats: CompletionStats) -> dict:
    return {
        "category": category.value,
        "bin": category.display_name,
        "completed": stats.completed_count,
        "missed": stats.missed_count,
        "current_streak": stats.current_streak,
        "best_streak": stats.best_streak,
        "points": stats.total_points_earned,
        "completion_rate": round(stats.completion_rate, 3),
        "last_completion_date": stats.last_completion_date.isoformat() if stats.last_completion_date else None,
    }


def item_to_dict(item: RecyclableItem) -> dict:
    return {
        "id": item.id,
        "type": item.type.value,
        "name": item.type.display_name,
        "points": item.type.point_value,
        "scanned_date": item.scanned_date.isoformat(),
    }


def event_to_dict(event: PickupEvent) -> dict:
    return {
        "id": event.id,
        "category": event.category.value if event.category else None,
        "pickup_date": event.pickup_date.isoformat(),
        "items": event.item_count,
        "breakdown": {t.value: n for t, n in event.item_breakdown.items()},
        "points": event.points_awarded,
        "timestamp": event.timestamp.isoformat(),
    }


# === Schema ===

@app.get("/api/schedule", dependencies=[Depends(verify_api_key)])
async def get_schedule(engine: PickupEngine = Depends(get_engine)):
    """Het volledige ophaalschema met de eerstvolgende ophaling per bak."""
    schedule = engine.get_schedule()
    moment = config.now_local()
    return {
        "bins": [bin_to_dict(s, moment) for s in schedule.bins.values()],
        "notifications_enabled": schedule.notifications_enabled,
        "reminder_hours": schedule.reminder_lead_time.total_seconds() / 3600,
        "last_updated": schedule.last_updated.isoformat(),
    }


@app.put("/api/schedule/{category}", dependencies=[Depends(verify_api_key)])
async def update_schedule(category: str, request: ScheduleUpdateRequest,
                          engine: PickupEngine = Depends(get_engine)):
    """Stel de ophaaldagen van een bak in."""
    bin_category = parse_category(category)
    updated = engine.update_pickup_days(bin_category, request.days, request.enabled)
    return {
        "success": True,
        "message": f"Schema voor {bin_category.display_name} bijgewerkt",
        "schedule": bin_to_dict(updated, config.now_local()),
    }


@app.post("/api/schedule/{category}/toggle", dependencies=[Depends(verify_api_key)])
async def toggle_schedule(category: str, engine: PickupEngine = Depends(get_engine)):
    """Zet een bak aan of uit."""
    bin_category = parse_category(category)
    updated = engine.toggle_bin_schedule(bin_category)
    status = "aan" if updated.enabled else "uit"
    return {
        "success": True,
        "message": f"{bin_category.display_name} staat {status}",
        "schedule": bin_to_dict(updated, config.now_local()),
    }


@app.post("/api/settings/notifications", dependencies=[Depends(verify_api_key)])
async def set_notifications(request: NotificationsRequest, engine: PickupEngine = Depends(get_engine)):
    schedule = engine.toggle_notifications(request.enabled)
    return {"success": True, "notifications_enabled": schedule.notifications_enabled}


@app.post("/api/settings/reminder-time", dependencies=[Depends(verify_api_key)])
async def set_reminder_time(request: ReminderTimeRequest, engine: PickupEngine = Depends(get_engine)):
    schedule = engine.update_reminder_time(request.hours)
    return {"success": True, "reminder_hours": schedule.reminder_lead_time.total_seconds() / 3600}


@app.post("/api/reset", dependencies=[Depends(verify_api_key)])
async def reset_all(engine: PickupEngine = Depends(get_engine)):
    """Wis het schema en alle punten.

    LET OP: Dit verwijdert ook alle streaks!
    """
    engine.clear_all_data()
    return {"success": True, "message": "Alle ophaaldata gewist"}


# === Ophalingen ===

@app.get("/api/pickups/next", dependencies=[Depends(verify_api_key)])
async def next_pickup(engine: PickupEngine = Depends(get_engine)):
    pickup = engine.get_next_pickup()
    return {"next": pickup_to_dict(pickup) if pickup else None}


@app.get("/api/pickups/upcoming", dependencies=[Depends(verify_api_key)])
async def upcoming_pickups(days: int = Query(7, ge=1, le=90), engine: PickupEngine = Depends(get_engine)):
    return [pickup_to_dict(p) for p in engine.get_upcoming_pickups(days)]


@app.get("/api/pickups/today", dependencies=[Depends(verify_api_key)])
async def today_pickups(engine: PickupEngine = Depends(get_engine)):
    """Welke bakken moeten vandaag aan de straat?"""
    bins = engine.get_today_pickups()
    return {
        "has_pickup_today": bool(bins),
        "bins": [{"category": c.value, "bin": c.display_name} for c in bins],
    }


@app.get("/api/pickups/week", dependencies=[Depends(verify_api_key)])
async def week_overview(engine: PickupEngine = Depends(get_engine)):
    """Overzicht van de komende 7 dagen met ASCII/emoji tabel."""
    return engine.get_week_overview()


@app.post("/api/pickups/{category}/complete", dependencies=[Depends(verify_api_key)])
async def complete_pickup(category: str, request: CompletionRequest,
                          engine: PickupEngine = Depends(get_engine)):
    """Registreer dat een bak is buiten gezet."""
    bin_category = parse_category(category)
    stats = engine.confirm_pickup(bin_category, request.points, request.items)
    return {
        "success": True,
        "message": f"{bin_category.display_name} buiten gezet!",
        "stats": stats_to_dict(bin_category, stats),
    }


@app.post("/api/pickups/{category}/missed", dependencies=[Depends(verify_api_key)])
async def missed_pickup(category: str, engine: PickupEngine = Depends(get_engine)):
    """Registreer dat een bak is vergeten."""
    bin_category = parse_category(category)
    stats = engine.mark_missed(bin_category)
    return {
        "success": True,
        "message": f"{bin_category.display_name} gemist",
        "stats": stats_to_dict(bin_category, stats),
    }


# === Punten ===

@app.get("/api/stats", dependencies=[Depends(verify_api_key)])
async def all_stats(engine: PickupEngine = Depends(get_engine)):
    stats = engine.get_all_stats()
    return {
        "total_points": sum(s.total_points_earned for s in stats.values()),
        "bins": [stats_to_dict(category, s) for category, s in stats.items()],
        "recycling": engine.get_recycling_summary(config.now_local()),
    }


# === Gescande items ===

@app.post("/api/items", dependencies=[Depends(verify_api_key)])
async def add_item(request: ScannedItemRequest, engine: PickupEngine = Depends(get_engine)):
    """Gescand item klaarzetten; punten volgen bij de volgende ophaling."""
    item = engine.add_scanned_item(request.type, config.now_local())
    pending = engine.get_pending_items()
    return {
        "success": True,
        "item": item_to_dict(item),
        "pending_count": len(pending),
        "potential_points": sum(p.type.point_value for p in pending),
    }


@app.get("/api/items/pending", dependencies=[Depends(verify_api_key)])
async def pending_items(engine: PickupEngine = Depends(get_engine)):
    pending = engine.get_pending_items()
    return {
        "count": len(pending),
        "potential_points": sum(p.type.point_value for p in pending),
        "items": [item_to_dict(p) for p in pending],
    }


@app.delete("/api/items/{item_id}", dependencies=[Depends(verify_api_key)])
async def remove_item(item_id: str, engine: PickupEngine = Depends(get_engine)):
    if not engine.remove_pending_item(item_id):
        raise HTTPException(status_code=404, detail=f"Item '{item_id}' niet gevonden")
    return {"success": True}


@app.get("/api/history", dependencies=[Depends(verify_api_key)])
async def pickup_history(limit: int = Query(20, ge=1, le=500), engine: PickupEngine = Depends(get_engine)):
    """Afgeronde ophalingen, nieuwste eerst."""
    return [event_to_dict(e) for e in engine.get_pickup_history(limit)]


@app.get("/api/widget", dependencies=[Depends(verify_api_key)])
async def widget(engine: PickupEngine = Depends(get_engine)):
    return engine.get_widget_snapshot().model_dump(mode="json")


# === Herinneringen ===

@app.get("/api/reminders", dependencies=[Depends(verify_api_key)])
async def reminders(days: int = Query(config.REMINDER_DAYS_AHEAD, ge=1, le=90),
                    engine: PickupEngine = Depends(get_engine)):
    return [r.to_dict() for r in engine.get_reminders(days)]


@app.get("/api/push/vapid-public-key")
async def vapid_public_key():
    return {"public_key": get_vapid_public_key()}


@app.post("/api/push/subscribe", dependencies=[Depends(verify_api_key)])
async def push_subscribe(request: PushSubscribeRequest):
    """Registreer een device voor herinneringen."""
    subscription = add_push_subscription(request.endpoint, request.keys.p256dh, request.keys.auth)
    return {"success": True, "subscription_id": subscription.id}


@app.post("/api/push/send-due", dependencies=[Depends(verify_api_key)])
async def push_send_due(engine: PickupEngine = Depends(get_engine)):
    """Verstuur herinneringen die het afgelopen uur aan de beurt waren (elk uur via cron)."""
    return engine.send_due_reminders()


# === Kalender ===

@app.get("/api/calendar.ics", dependencies=[Depends(verify_api_key)])
async def calendar_feed(days: int = Query(28, ge=1, le=365), engine: PickupEngine = Depends(get_engine)):
    """iCal feed met de komende ophaaldagen."""
    schedule = engine.get_schedule()
    pickups = schedule.upcoming_pickups(days, config.now_local())
    lead_time = schedule.reminder_lead_time if schedule.notifications_enabled else None
    cal = generate_ical(pickups, lead_time)
    return Response(content=cal.to_ical(), media_type="text/calendar")


# === Local development ===

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
