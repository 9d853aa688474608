"""Core logica voor het ophaalschema, de puntenadministratie en de gescande items.

De engine is de enige plek die zowel het schema leest als de statistieken
bijwerkt; schema en statistieken kennen elkaar niet.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .config import REMINDER_DAYS_AHEAD, now_local
from .database import PickupRepository, get_repository
from .models import (
    BinCategory, CompletionStats, PickupEvent, RecyclableItem, RecyclableType, RecyclingLedger, WeekDay, WidgetSnapshot
)
from .reminders import BinReminder, due_reminders, plan_reminders
from .schedule import BinSchedule, Pickup, PickupSchedule
from . import push_notifications

logger = logging.getLogger(__name__)

DAY_EMOJIS = {
    WeekDay.SUNDAY: "☀️",
    WeekDay.MONDAY: "🌙",
    WeekDay.TUESDAY: "🔥",
    WeekDay.WEDNESDAY: "💧",
    WeekDay.THURSDAY: "⚡",
    WeekDay.FRIDAY: "🌸",
    WeekDay.SATURDAY: "🌟",
}

BIN_EMOJIS = {
    BinCategory.GENERAL: "🔴",
    BinCategory.MIXED_RECYCLING: "🟡",
    BinCategory.PAPER_CARDBOARD: "🔵",
    BinCategory.GARDEN_ORGANIC: "🟢",
}


class PickupEngine:
    """Engine voor het beheren van de ophaaldagen en punten."""

    def __init__(self, repository: PickupRepository):
        self.repository = repository

    def _load(self) -> tuple[PickupSchedule, dict[BinCategory, CompletionStats]]:
        return self.repository.load_all()

    def _save(self, schedule: PickupSchedule, stats: dict[BinCategory, CompletionStats]):
        self.repository.save_all(schedule, stats)

    # === Schema beheer ===

    def get_schedule(self) -> PickupSchedule:
        return self.repository.load()

    def update_pickup_days(self, category: BinCategory, days: Iterable[WeekDay], enabled: bool = True) -> BinSchedule:
        """Stel de ophaaldagen van één bak in (vervangt het hele schema van die bak)."""
        category = BinCategory(category)
        schedule, stats = self._load()
        schedule.update_schedule(category, days, enabled)
        self._save(schedule, stats)

        updated = schedule.schedule_for(category)
        logger.info(
            "Schema %s bijgewerkt: %s (%s)",
            category.value,
            ", ".join(day.full_name for day in sorted(updated.pickup_days)) or "geen dagen",
            "aan" if updated.enabled else "uit"
        )
        return updated

    def toggle_bin_schedule(self, category: BinCategory) -> BinSchedule:
        """Zet een bak aan/uit met behoud van de ophaaldagen."""
        current = self.get_schedule().schedule_for(category)
        return self.update_pickup_days(category, current.pickup_days, not current.enabled)

    def toggle_notifications(self, enabled: bool) -> PickupSchedule:
        schedule, stats = self._load()
        schedule.notifications_enabled = enabled
        self._save(schedule, stats)
        logger.info("Notificaties %s", "aan" if enabled else "uit")
        return schedule

    def update_reminder_time(self, hours: float) -> PickupSchedule:
        """Hoeveel uur voor de ophaaldag de herinnering moet komen."""
        if hours < 0:
            raise ValueError("Herinnering kan niet na de ophaaldag komen")
        schedule, stats = self._load()
        schedule.reminder_lead_time = timedelta(hours=hours)
        self._save(schedule, stats)
        logger.info("Herinnering %s uur voor ophaling", hours)
        return schedule

    def clear_all_data(self):
        """Alles terug naar een leeg schema, nul punten en geen gescande items."""
        self.repository.save_household(
            PickupSchedule(),
            {category: CompletionStats() for category in BinCategory},
            RecyclingLedger()
        )
        logger.info("Alle ophaaldata gewist")

    # === Ophaal informatie ===

    def get_next_pickup(self, moment: Optional[datetime] = None) -> Optional[Pickup]:
        return self.get_schedule().next_pickup(moment or now_local())

    def get_upcoming_pickups(self, days: int = 7, moment: Optional[datetime] = None) -> list[Pickup]:
        return self.get_schedule().upcoming_pickups(days, moment or now_local())

    def has_pickup_today(self, moment: Optional[datetime] = None) -> bool:
        return self.get_schedule().has_pickup_today(moment or now_local())

    def get_today_pickups(self, moment: Optional[datetime] = None) -> list[BinCategory]:
        return self.get_schedule().today_pickups(moment or now_local())

    def next_pickup_string(self, category: BinCategory, moment: Optional[datetime] = None) -> str:
        return self.get_schedule().schedule_for(category).next_pickup_description(moment or now_local())

    def enabled_bin_count(self) -> int:
        return self.get_schedule().enabled_bin_count()

    def is_bin_scheduled(self, category: BinCategory) -> bool:
        return self.get_schedule().is_bin_scheduled(category)

    def get_scheduled_bins(self) -> list[BinCategory]:
        return self.get_schedule().scheduled_categories()

    def get_week_overview(self, moment: Optional[datetime] = None) -> dict:
        """Overzicht van de komende 7 dagen (vandaag meegerekend).

        Returns:
            Dict met per dag de datum en de bakken, plus een tekstoverzicht
        """
        if moment is None:
            moment = now_local()
        schedule = self.get_schedule()
        today = moment.date()

        days = []
        for offset in range(7):
            day_date = today + timedelta(days=offset)
            weekday = WeekDay.from_date(day_date)
            bins = [s.category for s in schedule.enabled_schedules() if weekday in s.pickup_days]
            days.append({
                "date": day_date.isoformat(),
                "day": weekday.full_name,
                "emoji": DAY_EMOJIS[weekday],
                "bins": [category.value for category in bins],
                "is_today": offset == 0,
            })

        return {
            "days": days,
            "overview": self._generate_ascii_overview(days),
        }

    def _generate_ascii_overview(self, days: list[dict]) -> str:
        """Genereer een ASCII/emoji weekoverzicht."""
        lines = []
        lines.append("╔═══════════════════════════════════════════════════╗")
        lines.append("║  🗑️  OPHAALSCHEMA KOMENDE WEEK                     ║")
        lines.append("╠═══════════════════════════════════════════════════╣")

        for index, day in enumerate(days):
            day_marker = "👉" if day["is_today"] else "  "
            date_str = day["date"][8:10] + "/" + day["date"][5:7]
            header = f"{day_marker}{day['emoji']} {day['day'].upper():<9} ({date_str})"
            lines.append(f"║ {header:<48}║")

            if not day["bins"]:
                lines.append("║    (geen ophaling)                                ║")
            for value in day["bins"]:
                category = BinCategory(value)
                line = f"{BIN_EMOJIS[category]} {category.display_name}: {category.waste_type}"
                lines.append(f"║    {line[:46]:<46}║")

            if index < len(days) - 1:
                lines.append("║───────────────────────────────────────────────────║")

        lines.append("╚═══════════════════════════════════════════════════╝")
        return "\n".join(lines)

    # === Punten en streaks ===

    def confirm_pickup(
        self,
        category: BinCategory,
        points: int = 0,
        items: Optional[list[RecyclableType]] = None,
        moment: Optional[datetime] = None
    ) -> CompletionStats:
        """Bak is buiten gezet.

        Punten komen uit, in deze volgorde:
        1. `items` als die zijn meegegeven
        2. de wachtende gescande items (die daarna als opgehaald gelden)
        3. het losse `points` getal
        Bij 1 en 2 komt er een ophaling in de geschiedenis.
        """
        category = BinCategory(category)
        if moment is None:
            moment = now_local()

        schedule, stats, ledger = self.repository.load_household()
        event = None
        if items:
            scanned = [RecyclableItem(type=item, scanned_date=moment) for item in items]
            event = ledger.record_pickup(scanned, moment, category, moment)
        elif ledger.pending_items:
            event = ledger.complete_pickup(moment, category, moment)
        if event is not None:
            points = event.points_awarded

        bin_stats = stats[category]
        bin_stats.record_completion(points, moment)
        self.repository.save_household(schedule, stats, ledger)

        logger.info(
            "%s buiten gezet: +%d punten voor %d items (streak %d)",
            category.display_name, max(points, 0), event.item_count if event else 0,
            bin_stats.current_streak
        )
        return bin_stats

    def mark_missed(self, category: BinCategory) -> CompletionStats:
        """Bak is niet buiten gezet: streak terug naar 0."""
        category = BinCategory(category)
        schedule, stats = self._load()
        bin_stats = stats[category]
        bin_stats.record_missed()
        self._save(schedule, stats)

        logger.info("%s gemist, streak gereset", category.display_name)
        return bin_stats

    def get_stats(self, category: BinCategory) -> CompletionStats:
        return self.repository.load_stats()[BinCategory(category)]

    def get_all_stats(self) -> dict[BinCategory, CompletionStats]:
        return self.repository.load_stats()

    def total_points(self) -> int:
        return sum(s.total_points_earned for s in self.get_all_stats().values())

    # === Gescande items ===

    def add_scanned_item(self, item_type: RecyclableType, moment: Optional[datetime] = None) -> RecyclableItem:
        """Gescand item klaarzetten voor de volgende ophaling (nog geen punten)."""
        ledger = self.repository.load_ledger()
        item = ledger.add_scanned_item(item_type, moment or now_local())
        self.repository.save_ledger(ledger)
        logger.info("%s toegevoegd (wachtend: %d)", item.type.display_name, ledger.pending_item_count())
        return item

    def remove_pending_item(self, item_id: str) -> bool:
        ledger = self.repository.load_ledger()
        if not ledger.remove_pending_item(item_id):
            return False
        self.repository.save_ledger(ledger)
        return True

    def get_pending_items(self) -> list[RecyclableItem]:
        return self.repository.load_ledger().pending_items

    def get_pickup_history(self, limit: Optional[int] = None) -> list[PickupEvent]:
        """Ophalingen, nieuwste eerst."""
        history = list(reversed(self.repository.load_ledger().pickup_history))
        return history[:limit] if limit is not None else history

    def get_recycling_summary(self, moment: Optional[datetime] = None) -> dict:
        """Statistieken over de gescande items en de ophalingen."""
        if moment is None:
            moment = now_local()
        ledger = self.repository.load_ledger()
        most_recycled = ledger.most_recycled_type()
        return {
            "pending_items": ledger.pending_item_count(),
            "pending_by_type": {t.value: n for t, n in ledger.pending_items_by_type().items()},
            "potential_points": ledger.potential_points(),
            "total_pickups": ledger.total_pickups(),
            "total_items_recycled": ledger.total_items_recycled(),
            "points_this_week": ledger.points_this_week(moment),
            "points_this_month": ledger.points_this_month(moment),
            "most_recycled_type": most_recycled.value if most_recycled else None,
            "recycled_by_type": {t.value: n for t, n in ledger.recycled_items_by_type().items()},
        }

    # === Herinneringen ===

    def get_reminders(self, days_ahead: int = REMINDER_DAYS_AHEAD,
                      moment: Optional[datetime] = None) -> list[BinReminder]:
        return plan_reminders(self.get_schedule(), moment or now_local(), days_ahead)

    def send_due_reminders(self, window: timedelta = timedelta(hours=1),
                           moment: Optional[datetime] = None) -> dict:
        """Verstuur de herinneringen van het afgelopen `window` (cron)."""
        reminders = due_reminders(self.get_schedule(), moment or now_local(), window)
        return push_notifications.send_bin_reminders(reminders)

    # === Widget ===

    def get_widget_snapshot(self, moment: Optional[datetime] = None) -> WidgetSnapshot:
        if moment is None:
            moment = now_local()
        schedule, stats, ledger = self.repository.load_household()
        next_pickup = schedule.next_pickup(moment)
        return WidgetSnapshot(
            total_points=sum(s.total_points_earned for s in stats.values()),
            points_this_week=ledger.points_this_week(moment),
            next_pickup_date=next_pickup.date if next_pickup else None,
            next_pickup_bin=next_pickup.category.display_name if next_pickup else None,
            last_updated=schedule.last_updated,
        )


engine = PickupEngine(get_repository())
