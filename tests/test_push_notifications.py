"""
Tests voor het versturen van push notificaties.

pywebpush en de database worden gemockt; er gaat niets over het netwerk.
"""
import json
from datetime import timedelta
from unittest.mock import Mock, patch
from pywebpush import WebPushException

from src import push_notifications
from src.models import BinCategory, PushSubscription
from src.reminders import build_reminder
from tests.conftest import midnight


def subscription(number: int) -> PushSubscription:
    return PushSubscription(
        id=str(number),
        endpoint=f"https://push.example.com/{number}",
        p256dh=f"key-{number}",
        auth=f"auth-{number}",
    )


class TestSendPushToAll:
    """Eén notificatie naar alle devices."""

    def test_no_vapid_keys(self):
        with patch("src.config.VAPID_PRIVATE_KEY", ""):
            result = push_notifications.send_push_to_all("Titel", "Tekst")
        assert "error" in result
        assert result["success"] == 0

    @patch("src.config.VAPID_PRIVATE_KEY", "private")
    def test_no_subscriptions(self):
        with patch("src.push_notifications.get_all_push_subscriptions", return_value=[]):
            result = push_notifications.send_push_to_all("Titel", "Tekst")
        assert result["total"] == 0
        assert "error" in result

    @patch("src.config.VAPID_PRIVATE_KEY", "private")
    def test_sends_to_every_device(self):
        subs = [subscription(1), subscription(2)]
        with patch("src.push_notifications.get_all_push_subscriptions", return_value=subs), \
                patch("src.push_notifications.webpush") as webpush:
            result = push_notifications.send_push_to_all("Titel", "Tekst", {"type": "test"})

        assert result == {"total": 2, "success": 2, "failed": 0}
        assert webpush.call_count == 2
        kwargs = webpush.call_args.kwargs
        assert kwargs["subscription_info"]["endpoint"] == "https://push.example.com/2"
        assert kwargs["vapid_private_key"] == "private"
        assert json.loads(kwargs["data"]) == {"title": "Titel", "body": "Tekst", "data": {"type": "test"}}

    @patch("src.config.VAPID_PRIVATE_KEY", "private")
    def test_expired_subscription_is_removed(self):
        gone = WebPushException("gone", response=Mock(status_code=410))
        with patch("src.push_notifications.get_all_push_subscriptions", return_value=[subscription(1)]), \
                patch("src.push_notifications.webpush", side_effect=gone), \
                patch("src.push_notifications.delete_push_subscription_by_endpoint") as delete:
            result = push_notifications.send_push_to_all("Titel", "Tekst")

        assert result == {"total": 1, "success": 0, "failed": 1}
        delete.assert_called_once_with("https://push.example.com/1")

    @patch("src.config.VAPID_PRIVATE_KEY", "private")
    def test_other_errors_keep_subscription(self):
        error = WebPushException("server error", response=Mock(status_code=500))
        with patch("src.push_notifications.get_all_push_subscriptions", return_value=[subscription(1)]), \
                patch("src.push_notifications.webpush", side_effect=error), \
                patch("src.push_notifications.delete_push_subscription_by_endpoint") as delete:
            result = push_notifications.send_push_to_all("Titel", "Tekst")

        assert result["failed"] == 1
        delete.assert_not_called()


class TestSendBinReminders:
    """Afvalbak herinneringen."""

    def test_nothing_to_send(self):
        result = push_notifications.send_bin_reminders([])
        assert result["skipped"] is True

    def test_reminder_payload(self):
        reminder = build_reminder(BinCategory.RED, midnight(19), timedelta(hours=12))

        with patch("src.push_notifications.send_push_to_all",
                   return_value={"total": 1, "success": 1, "failed": 0}) as send:
            result = push_notifications.send_bin_reminders([reminder])

        assert result == {"sent": 1, "results": {"general": {"total": 1, "success": 1, "failed": 0}}}
        title, body, data = send.call_args[0]
        assert title == "Red Bin Collection Tomorrow"
        assert body == "Don't forget to put out your red bin (general waste)!"
        assert data["category"] == "general"
        assert data["pickup_date"] == midnight(19).isoformat()
