"""Push notification service voor de afvalbak herinneringen."""
import json
import logging
from pywebpush import webpush, WebPushException

from . import config
from .database import get_all_push_subscriptions, delete_push_subscription_by_endpoint
from .reminders import BinReminder

logger = logging.getLogger(__name__)


def get_vapid_public_key() -> str:
    """Geef de public key terug voor gebruik in de frontend."""
    return config.VAPID_PUBLIC_KEY


def send_to_endpoint(endpoint: str, p256dh: str, auth: str, payload: str) -> bool:
    """Stuur één payload naar één device.

    Returns:
        True als het gelukt is. Een verlopen subscription (410) wordt verwijderd.
    """
    try:
        webpush(
            subscription_info={
                "endpoint": endpoint,
                "keys": {"p256dh": p256dh, "auth": auth}
            },
            data=payload,
            vapid_private_key=config.VAPID_PRIVATE_KEY,
            vapid_claims={"sub": config.VAPID_CLAIMS_EMAIL}
        )
        return True
    except WebPushException as e:
        # 410 Gone = subscription verlopen, verwijderen
        if e.response is not None and e.response.status_code == 410:
            delete_push_subscription_by_endpoint(endpoint)
            logger.info("Verlopen subscription verwijderd: %s...", endpoint[:50])
        else:
            logger.warning("Push naar %s... mislukt: %s", endpoint[:50], e)
        return False


def send_push_to_all(title: str, body: str, data: dict = None) -> dict:
    """Stuur een push notificatie naar alle geregistreerde devices.

    Returns:
        Dict met total, success en failed
    """
    if not config.VAPID_PRIVATE_KEY:
        return {"error": "VAPID keys niet geconfigureerd", "success": 0, "failed": 0}

    subscriptions = get_all_push_subscriptions()
    if not subscriptions:
        return {"error": "Geen subscriptions gevonden", "total": 0, "success": 0, "failed": 0}

    payload = json.dumps({
        "title": title,
        "body": body,
        "data": data or {}
    })

    results = {"total": len(subscriptions), "success": 0, "failed": 0}
    for sub in subscriptions:
        if send_to_endpoint(sub.endpoint, sub.p256dh, sub.auth, payload):
            results["success"] += 1
        else:
            results["failed"] += 1
    return results


def send_bin_reminder(reminder: BinReminder) -> dict:
    """Stuur één afvalbak herinnering naar alle devices."""
    return send_push_to_all(reminder.title, reminder.message, {
        "type": "bin_reminder",
        "category": reminder.category.value,
        "pickup_date": reminder.pickup_date.isoformat(),
    })


def send_bin_reminders(reminders: list[BinReminder]) -> dict:
    """Stuur een lijst herinneringen.

    Returns:
        Dict met aantal verstuurde herinneringen en resultaat per bak
    """
    if not reminders:
        return {"skipped": True, "reason": "Geen herinneringen op dit moment"}

    results = {}
    for reminder in reminders:
        results[reminder.category.value] = send_bin_reminder(reminder)
    logger.info("%d afvalbak herinneringen verstuurd", len(reminders))
    return {"sent": len(reminders), "results": results}
