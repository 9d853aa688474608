"""PostgreSQL opslag voor de RecycloScan pickup service (Vercel/Supabase Postgres).

Het ophaalschema, de puntenadministratie en de gescande items worden samen als één JSON
snapshot bewaard (zie snapshot.py). De service gebruikt een repository,
zodat de kern zelf geen globale toestand heeft.
"""
import logging
import os
from typing import Optional
import psycopg2
from psycopg2.extras import Json, RealDictCursor

from .models import BinCategory, CompletionStats, PushSubscription, RecyclingLedger
from .schedule import PickupSchedule
from .snapshot import build_snapshot, restore_ledger, restore_snapshot

logger = logging.getLogger(__name__)

# Sleutel waaronder het huishouden wordt opgeslagen
DEFAULT_STATE_KEY = "household"


# Database URL - Supabase/Vercel zetten verschillende variabelen
def get_database_url():
    """Haal de database URL op en clean eventuele ongeldige parameters."""
    url = (
        os.getenv("POSTGRES_URL") or
        os.getenv("DATABASE_URL") or
        os.getenv("SUPABASE_DB_URL") or
        os.getenv("POSTGRES_URL_NON_POOLING") or
        ""
    )
    # Verwijder query parameters die psycopg2 niet kent
    if "?" in url:
        base_url, params = url.split("?", 1)
        valid_params = [
            param for param in params.split("&")
            if param.split("=")[0] in ("sslmode", "connect_timeout", "application_name")
        ]
        if valid_params:
            url = base_url + "?" + "&".join(valid_params)
        else:
            url = base_url + "?sslmode=require"
    return url

DATABASE_URL = get_database_url()


def get_db():
    """Maak een database connectie."""
    conn = psycopg2.connect(DATABASE_URL, cursor_factory=RealDictCursor, sslmode='require')
    return conn


def init_db():
    """Maak de database tabellen aan."""
    conn = get_db()
    cur = conn.cursor()

    cur.execute("""
        CREATE TABLE IF NOT EXISTS app_state (
            key VARCHAR(100) PRIMARY KEY,
            data JSONB NOT NULL,
            updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cur.execute("""
        CREATE TABLE IF NOT EXISTS push_subscriptions (
            id SERIAL PRIMARY KEY,
            endpoint TEXT UNIQUE NOT NULL,
            p256dh TEXT NOT NULL,
            auth TEXT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """)

    conn.commit()
    cur.close()
    conn.close()
    logger.info("Database tabellen aangemaakt")


# Opgeslagen snapshots
def load_state(key: str) -> Optional[dict]:
    """Haal een opgeslagen snapshot op (None als er nog niets is)."""
    conn = get_db()
    cur = conn.cursor()
    cur.execute("SELECT data FROM app_state WHERE key = %s", (key,))
    row = cur.fetchone()
    cur.close()
    conn.close()
    return row["data"] if row else None


def save_state(key: str, data: dict):
    """Sla een snapshot op (overschrijft de vorige)."""
    conn = get_db()
    cur = conn.cursor()
    try:
        cur.execute("""
            INSERT INTO app_state (key, data, updated_at)
            VALUES (%s, %s, CURRENT_TIMESTAMP)
            ON CONFLICT (key) DO UPDATE SET data = EXCLUDED.data, updated_at = CURRENT_TIMESTAMP
        """, (key, Json(data)))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


# Push subscriptions
def add_push_subscription(endpoint: str, p256dh: str, auth: str) -> PushSubscription:
    """Registreer een device voor push notificaties (bestaand endpoint wordt bijgewerkt)."""
    conn = get_db()
    cur = conn.cursor()
    cur.execute("""
        INSERT INTO push_subscriptions (endpoint, p256dh, auth)
        VALUES (%s, %s, %s)
        ON CONFLICT (endpoint) DO UPDATE SET p256dh = EXCLUDED.p256dh, auth = EXCLUDED.auth
        RETURNING id, created_at
    """, (endpoint, p256dh, auth))
    row = cur.fetchone()
    conn.commit()
    cur.close()
    conn.close()
    return PushSubscription(
        id=str(row["id"]),
        endpoint=endpoint,
        p256dh=p256dh,
        auth=auth,
        created_at=row["created_at"]
    )


def get_all_push_subscriptions() -> list[PushSubscription]:
    conn = get_db()
    cur = conn.cursor()
    cur.execute("SELECT id, endpoint, p256dh, auth, created_at FROM push_subscriptions")
    rows = cur.fetchall()
    cur.close()
    conn.close()
    return [PushSubscription(
        id=str(r["id"]),
        endpoint=r["endpoint"],
        p256dh=r["p256dh"],
        auth=r["auth"],
        created_at=r["created_at"]
    ) for r in rows]


def delete_push_subscription_by_endpoint(endpoint: str) -> bool:
    """Verwijder een verlopen subscription."""
    conn = get_db()
    cur = conn.cursor()
    cur.execute("DELETE FROM push_subscriptions WHERE endpoint = %s", (endpoint,))
    deleted = cur.rowcount > 0
    conn.commit()
    cur.close()
    conn.close()
    return deleted


# === Repositories ===

class PickupRepository:
    """Laden en opslaan van het ophaalschema en de statistieken.

    Subklassen leveren alleen load_snapshot/save_snapshot; het omzetten
    (en repareren) van het opslagformaat gebeurt hier.
    """

    def load_snapshot(self) -> Optional[dict]:
        raise NotImplementedError

    def save_snapshot(self, data: dict):
        raise NotImplementedError

    def load_household(self) -> tuple[PickupSchedule, dict[BinCategory, CompletionStats], RecyclingLedger]:
        """Schema, statistieken en gescande items uit één snapshot."""
        data = self.load_snapshot()
        schedule, stats = restore_snapshot(data)
        return schedule, stats, restore_ledger(data)

    def save_household(self, schedule: PickupSchedule, stats: dict[BinCategory, CompletionStats],
                       ledger: RecyclingLedger):
        self.save_snapshot(build_snapshot(schedule, stats, ledger))

    def load_all(self) -> tuple[PickupSchedule, dict[BinCategory, CompletionStats]]:
        return restore_snapshot(self.load_snapshot())

    def save_all(self, schedule: PickupSchedule, stats: dict[BinCategory, CompletionStats]):
        # Gescande items blijven staan
        self.save_household(schedule, stats, self.load_ledger())

    def load_ledger(self) -> RecyclingLedger:
        return restore_ledger(self.load_snapshot())

    def save_ledger(self, ledger: RecyclingLedger):
        schedule, stats = self.load_all()
        self.save_household(schedule, stats, ledger)

    def load(self) -> PickupSchedule:
        return self.load_all()[0]

    def save(self, schedule: PickupSchedule):
        _, stats = self.load_all()
        self.save_all(schedule, stats)

    def load_stats(self) -> dict[BinCategory, CompletionStats]:
        return self.load_all()[1]

    def save_stats(self, stats: dict[BinCategory, CompletionStats]):
        schedule, _ = self.load_all()
        self.save_all(schedule, stats)


class InMemoryRepository(PickupRepository):
    """Houdt de snapshot in het geheugen (tests, lokaal draaien zonder database)."""

    def __init__(self, snapshot: Optional[dict] = None):
        self.snapshot = snapshot
        self.save_count = 0

    def load_snapshot(self) -> Optional[dict]:
        return self.snapshot

    def save_snapshot(self, data: dict):
        self.snapshot = data
        self.save_count += 1


class PostgresRepository(PickupRepository):
    """Snapshot in de app_state tabel."""

    def __init__(self, key: str = DEFAULT_STATE_KEY):
        self.key = key

    def load_snapshot(self) -> Optional[dict]:
        return load_state(self.key)

    def save_snapshot(self, data: dict):
        save_state(self.key, data)


def get_repository() -> PickupRepository:
    """Postgres als er een DATABASE_URL is, anders in-memory."""
    if not DATABASE_URL:
        logger.warning("Geen DATABASE_URL gevonden, schema wordt alleen in het geheugen bewaard")
        return InMemoryRepository()
    return PostgresRepository()
