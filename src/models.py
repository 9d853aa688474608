"""Data models voor de RecycloScan pickup service."""
import calendar
import uuid
from datetime import date, datetime, timedelta
from enum import Enum, IntEnum
from typing import Iterable, Optional, Union
from pydantic import BaseModel, Field

from .config import now_local


class WeekDay(IntEnum):
    """Weekdag met vaste volgorde: 1=zondag t/m 7=zaterdag."""
    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7

    @classmethod
    def from_date(cls, value: Union[date, datetime]) -> "WeekDay":
        """Weekdag van een datum of tijdstip (in de kalender van dat tijdstip)."""
        # isoweekday: maandag=1 .. zondag=7
        return cls(value.isoweekday() % 7 + 1)

    @property
    def full_name(self) -> str:
        return self.name.capitalize()

    @property
    def short_name(self) -> str:
        return self.name[0]


class BinCategory(str, Enum):
    """De vier fysieke afvalbakken.

    De kleurnamen (RED, YELLOW, ...) zijn aliassen, zodat zowel
    BinCategory.GENERAL als BinCategory.RED dezelfde bak aanduiden.
    """
    GENERAL = "general"
    MIXED_RECYCLING = "mixed_recycling"
    PAPER_CARDBOARD = "paper_cardboard"
    GARDEN_ORGANIC = "garden_organic"

    RED = "general"
    YELLOW = "mixed_recycling"
    BLUE = "paper_cardboard"
    GREEN = "garden_organic"

    @classmethod
    def _missing_(cls, value):
        # Accepteer ook "mixed-recycling", "Paper Cardboard" en kleurnamen ("red")
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_").replace(" ", "_")
            for member in cls:
                if key in (member.value, member.color):
                    return member
        return None

    @property
    def color(self) -> str:
        return BIN_INFO[self.value]["color"]

    @property
    def display_name(self) -> str:
        return BIN_INFO[self.value]["display_name"]

    @property
    def waste_type(self) -> str:
        return BIN_INFO[self.value]["waste_type"]

    @property
    def description(self) -> str:
        return BIN_INFO[self.value]["description"]


BIN_INFO = {
    "general": {
        "color": "red",
        "display_name": "Red Bin",
        "waste_type": "General Waste",
        "description": "Non-recyclable items, food waste, and general household waste",
    },
    "mixed_recycling": {
        "color": "yellow",
        "display_name": "Yellow Bin",
        "waste_type": "Mixed Container Recycling",
        "description": "Plastic bottles, cans, glass bottles, and metal containers",
    },
    "paper_cardboard": {
        "color": "blue",
        "display_name": "Blue Bin",
        "waste_type": "Paper & Cardboard",
        "description": "Newspapers, magazines, cardboard boxes, and paper products",
    },
    "garden_organic": {
        "color": "green",
        "display_name": "Green Bin",
        "waste_type": "Vegetation & Garden Waste",
        "description": "Grass clippings, leaves, branches, and organic garden waste",
    },
}


class RecyclableType(str, Enum):
    """Soort gescand item, met punten per item."""
    PLASTIC = "plastic"
    PAPER = "paper"
    METAL = "metal"
    GLASS = "glass"
    ORGANIC = "organic"
    ELECTRONIC = "electronic"
    GENERAL = "general"

    @property
    def point_value(self) -> int:
        return ITEM_POINTS[self.value]

    @property
    def display_name(self) -> str:
        return "E-Waste" if self is RecyclableType.ELECTRONIC else self.value.capitalize()


ITEM_POINTS = {
    "plastic": 10,
    "paper": 8,
    "metal": 15,
    "glass": 12,
    "organic": 5,
    "electronic": 20,
    "general": 3,
}


def points_for_items(items: Iterable[RecyclableType]) -> int:
    """Totaal aantal punten voor een lijst opgehaalde items."""
    return sum(RecyclableType(item).point_value for item in items)


class CompletionStats(BaseModel):
    """Puntenadministratie voor één afvalbak.

    Invariant: best_streak >= current_streak.
    """
    completed_count: int = 0
    missed_count: int = 0
    current_streak: int = 0
    best_streak: int = 0
    total_points_earned: int = 0
    last_completion_date: Optional[datetime] = None

    @property
    def completion_rate(self) -> float:
        total = self.completed_count + self.missed_count
        if total == 0:
            return 0.0
        return self.completed_count / total

    def record_completion(self, points: int, moment: Optional[datetime] = None) -> None:
        """Bak is buiten gezet: streak omhoog en punten erbij.

        Negatieve punten worden als 0 geteld.
        """
        self.completed_count += 1
        self.current_streak += 1
        self.total_points_earned += max(points, 0)
        self.last_completion_date = moment if moment is not None else now_local()
        if self.current_streak > self.best_streak:
            self.best_streak = self.current_streak

    def record_missed(self) -> None:
        """Bak is vergeten: streak terug naar 0."""
        self.missed_count += 1
        self.current_streak = 0


def _new_id() -> str:
    return uuid.uuid4().hex


def _count_types(items: Iterable["RecyclableItem"]) -> dict[RecyclableType, int]:
    """Aantal items per soort, in RecyclableType volgorde."""
    counts = {}
    for item in items:
        counts[item.type] = counts.get(item.type, 0) + 1
    return {item_type: counts[item_type] for item_type in RecyclableType if item_type in counts}


def _one_month_before(moment: datetime) -> datetime:
    # 31 maart -> 28/29 februari
    if moment.month == 1:
        year, month = moment.year - 1, 12
    else:
        year, month = moment.year, moment.month - 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class RecyclableItem(BaseModel):
    """Eén gescand item dat wacht op de volgende ophaling."""
    id: str = Field(default_factory=_new_id)
    type: RecyclableType
    scanned_date: datetime
    is_collected: bool = False


class PickupEvent(BaseModel):
    """Een afgeronde ophaling met de items die zijn meegegaan."""
    id: str = Field(default_factory=_new_id)
    category: Optional[BinCategory] = None
    pickup_date: datetime
    collected_items: list[RecyclableItem] = Field(default_factory=list)
    points_awarded: int = 0
    timestamp: datetime

    @classmethod
    def from_items(
        cls,
        items: Iterable[RecyclableItem],
        pickup_date: datetime,
        category: Optional[BinCategory] = None,
        moment: Optional[datetime] = None
    ) -> "PickupEvent":
        """Punten = som van de puntwaarden van de items."""
        collected = [item.model_copy(update={"is_collected": True}) for item in items]
        return cls(
            category=category,
            pickup_date=pickup_date,
            collected_items=collected,
            points_awarded=points_for_items(item.type for item in collected),
            timestamp=moment if moment is not None else now_local(),
        )

    @property
    def item_count(self) -> int:
        return len(self.collected_items)

    @property
    def item_breakdown(self) -> dict[RecyclableType, int]:
        return _count_types(self.collected_items)


class RecyclingLedger(BaseModel):
    """Gescande items die nog buiten moeten plus de geschiedenis van ophalingen.

    Scannen levert nog geen punten op; pas bij de ophaling worden de
    wachtende items omgezet in een PickupEvent met punten.
    """
    pending_items: list[RecyclableItem] = Field(default_factory=list)
    pickup_history: list[PickupEvent] = Field(default_factory=list)

    # === Scannen ===

    def add_scanned_item(self, item_type: RecyclableType, moment: Optional[datetime] = None) -> RecyclableItem:
        item = RecyclableItem(
            type=RecyclableType(item_type),
            scanned_date=moment if moment is not None else now_local(),
        )
        self.pending_items.append(item)
        return item

    def remove_pending_item(self, item_id: str) -> bool:
        remaining = [item for item in self.pending_items if item.id != item_id]
        removed = len(remaining) < len(self.pending_items)
        self.pending_items = remaining
        return removed

    def pending_item_count(self) -> int:
        return len(self.pending_items)

    def pending_items_by_type(self) -> dict[RecyclableType, int]:
        return _count_types(self.pending_items)

    def potential_points(self) -> int:
        """Punten die de wachtende items bij de volgende ophaling opleveren."""
        return points_for_items(item.type for item in self.pending_items)

    # === Ophalen ===

    def complete_pickup(
        self,
        pickup_date: datetime,
        category: Optional[BinCategory] = None,
        moment: Optional[datetime] = None
    ) -> Optional[PickupEvent]:
        """Zet alle wachtende items om in een ophaling. None als er niets wacht."""
        if not self.pending_items:
            return None
        event = self.record_pickup(self.pending_items, pickup_date, category, moment)
        self.pending_items = []
        return event

    def record_pickup(
        self,
        items: Iterable[RecyclableItem],
        pickup_date: datetime,
        category: Optional[BinCategory] = None,
        moment: Optional[datetime] = None
    ) -> PickupEvent:
        event = PickupEvent.from_items(items, pickup_date, category, moment)
        self.pickup_history.append(event)
        return event

    # === Statistieken ===

    def total_pickups(self) -> int:
        return len(self.pickup_history)

    def total_items_recycled(self) -> int:
        return sum(event.item_count for event in self.pickup_history)

    def points_since(self, since: datetime) -> int:
        return sum(event.points_awarded for event in self.pickup_history if event.timestamp >= since)

    def points_this_week(self, moment: Optional[datetime] = None) -> int:
        """Punten van de afgelopen 7 dagen."""
        if moment is None:
            moment = now_local()
        return self.points_since(moment - timedelta(days=7))

    def points_this_month(self, moment: Optional[datetime] = None) -> int:
        """Punten sinds dezelfde dag vorige maand."""
        if moment is None:
            moment = now_local()
        return self.points_since(_one_month_before(moment))

    def recycled_items_by_type(self) -> dict[RecyclableType, int]:
        return _count_types(item for event in self.pickup_history for item in event.collected_items)

    def most_recycled_type(self) -> Optional[RecyclableType]:
        """Meest gerecyclede soort; bij gelijke aantallen de eerste in RecyclableType volgorde."""
        counts = self.recycled_items_by_type()
        if not counts:
            return None
        return max(counts, key=counts.get)


class WidgetSnapshot(BaseModel):
    """Kleine samenvatting voor de home-screen widget."""
    total_points: int
    points_this_week: int = 0
    next_pickup_date: Optional[datetime] = None
    next_pickup_bin: Optional[str] = None
    last_updated: datetime


class PushSubscription(BaseModel):
    """Web push subscription van een device."""
    id: str
    endpoint: str
    p256dh: str
    auth: str
    created_at: datetime = Field(default_factory=now_local)
