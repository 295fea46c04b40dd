from datetime import datetime, timedelta, UTC

import pytest

from tradingroom.db import models
from tradingroom.services.notification_service import NotificationService


def _notify(service, user, n=1, event_type="payment_failed"):
    return [
        service.create_notification(user.id, event_type, f"Title {i}", f"Body {i}")
        for i in range(n)
    ]


class TestCreateNotification:
    def test_title_and_message_limits(self, db, factory):
        user = factory.user()
        service = NotificationService(db)
        service.create_notification(user.id, "payment_failed", "t" * 200, "m" * 1000)
        with pytest.raises(ValueError, match="title"):
            service.create_notification(user.id, "payment_failed", "t" * 201, "body")
        with pytest.raises(ValueError, match="message"):
            service.create_notification(user.id, "payment_failed", "title", "m" * 1001)
        with pytest.raises(ValueError):
            service.create_notification(user.id, "payment_failed", "  ", "body")

    def test_default_expiry_uses_ttl(self, db, factory, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_TTL_DAYS", "3")
        user = factory.user()
        row = NotificationService(db).create_notification(user.id, "payment_failed", "t", "m")
        expires = models.as_utc(row.expires_at)
        assert timedelta(days=2, hours=23) < expires - datetime.now(UTC) <= timedelta(days=3)


class TestInbox:
    def test_pagination_and_has_more(self, db, factory):
        user = factory.user()
        service = NotificationService(db)
        _notify(service, user, n=5)

        page, has_more = service.get_user_notifications(user.id, limit=2)
        assert len(page) == 2 and has_more is True
        page, has_more = service.get_user_notifications(user.id, limit=2, offset=4)
        assert len(page) == 1 and has_more is False

    def test_limit_capped_at_fifty(self, db, factory):
        user = factory.user()
        service = NotificationService(db)
        _notify(service, user, n=55)
        page, has_more = service.get_user_notifications(user.id, limit=500)
        assert len(page) == 50 and has_more is True

    def test_expired_rows_hidden_but_never_expiring_shown(self, db, factory):
        user = factory.user()
        service = NotificationService(db)
        service.create_notification(user.id, "payment_failed", "old", "old", expires_days=-1)
        keep = service.create_notification(user.id, "payment_failed", "keep", "keep")
        keep.expires_at = None
        db.commit()

        page, _ = service.get_user_notifications(user.id)
        assert [n.title for n in page] == ["keep"]
        assert service.get_unread_count(user.id) == 1

    def test_read_flow_and_bulk_operations(self, db, factory):
        user = factory.user()
        other = factory.user()
        service = NotificationService(db)
        first, second, third = _notify(service, user, n=3)

        assert service.mark_notification_read(first.id, other.id) is False
        assert service.mark_notification_read(first.id, user.id) is True
        assert service.get_unread_count(user.id) == 2

        unread, _ = service.get_user_notifications(user.id, unread_only=True)
        assert {n.id for n in unread} == {second.id, third.id}

        assert service.mark_all_read(user.id) == 2
        assert service.get_unread_count(user.id) == 0

        assert service.delete_notification(first.id, other.id) is False
        assert service.delete_notification(first.id, user.id) is True
        assert service.delete_all_read(user.id) == 2
        assert service.get_total_count(user.id) == 0

    def test_stats(self, db, factory):
        user = factory.user()
        service = NotificationService(db)
        _notify(service, user, n=2, event_type="payment_failed")
        old = _notify(service, user, n=1, event_type="subscription_renewed")[0]
        old.created_at = datetime.now(UTC) - timedelta(days=2)
        db.commit()
        service.mark_notification_read(old.id, user.id)

        stats = service.get_stats(user.id)
        assert stats == {
            "total": 3,
            "unread": 2,
            "by_type": {"payment_failed": 2, "subscription_renewed": 1},
            "recent_24h": 2,
        }

    def test_cleanup_expired(self, db, factory):
        user = factory.user()
        service = NotificationService(db)
        service.create_notification(user.id, "payment_failed", "old", "old", expires_days=-1)
        service.create_notification(user.id, "payment_failed", "new", "new")
        assert service.cleanup_expired_notifications() == 1
        assert db.query(models.Notification).count() == 1


def test_channel_preference_defaults_to_enabled(db, factory):
    owner = factory.user()
    server = factory.server(owner)
    channel = factory.channel(server, owner)
    service = NotificationService(db)
    assert service.get_channel_preference(owner.id, channel.id) is True
    service.set_channel_preference(owner.id, channel.id, False)
    assert service.get_channel_preference(owner.id, channel.id) is False
    service.set_channel_preference(owner.id, channel.id, True)
    assert service.get_channel_preference(owner.id, channel.id) is True
    assert db.query(models.ChannelNotificationPreference).count() == 1
