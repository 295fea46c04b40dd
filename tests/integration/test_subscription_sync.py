import time

import pytest

from tradingroom.db import models
from tradingroom.services.subscription_service import SubscriptionSyncService


def _sub_event(event_type, user=None, status="active", sub_id="sub_123", customer="cus_123", **extra):
    obj = {
        "id": sub_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "cancel_at_period_end": False,
        "items": {"data": [{"current_period_end": int(time.time()) + 30 * 86400}]},
        "metadata": {"user_id": str(user.id)} if user else {},
    }
    obj.update(extra)
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


def _invoice_event(event_type, sub_id="sub_123", customer="cus_123", **extra):
    obj = {"id": "in_1", "object": "invoice", "subscription": sub_id, "customer": customer}
    obj.update(extra)
    return {"id": "evt_2", "type": event_type, "data": {"object": obj}}


@pytest.fixture
def trader(db, factory):
    owner = factory.user("owner@example.com")
    first = factory.server(owner, name="Alpha")
    second = factory.server(owner, name="Beta")
    user = factory.user("trader@example.com", "Trader")
    factory.join(first, user, "free")
    factory.join(second, user, "free")
    return {"user": user, "servers": [first, second], "owner": owner}


def _role_names(db, user):
    rows = (
        db.query(models.Role.name)
        .join(models.Member, models.Member.role_id == models.Role.id)
        .filter(models.Member.user_id == user.id)
        .all()
    )
    return sorted(row[0] for row in rows)


def test_created_active_promotes_all_memberships(db, trader):
    result = SubscriptionSyncService(db).handle_event(_sub_event("customer.subscription.created", trader["user"]))
    assert result["handled"] is True
    assert result["memberships_updated"] == 2
    assert _role_names(db, trader["user"]) == ["premium", "premium"]

    record = db.query(models.Subscription).one()
    assert record.status == "active"
    assert record.stripe_customer_id == "cus_123"
    assert record.current_period_end is not None


def test_trialing_counts_as_premium(db, trader):
    SubscriptionSyncService(db).handle_event(
        _sub_event("customer.subscription.created", trader["user"], status="trialing")
    )
    assert _role_names(db, trader["user"]) == ["premium", "premium"]


def test_deleted_demotes_and_notifies(db, trader):
    service = SubscriptionSyncService(db)
    service.handle_event(_sub_event("customer.subscription.created", trader["user"]))
    service.handle_event(_sub_event("customer.subscription.deleted", trader["user"]))

    assert _role_names(db, trader["user"]) == ["free", "free"]
    assert db.query(models.Subscription).one().status == "canceled"
    notice = db.query(models.Notification).filter(models.Notification.user_id == trader["user"].id).one()
    assert notice.event_type == "subscription_cancelled"


def test_admin_membership_is_left_alone(db, factory, trader):
    server = trader["servers"][0]
    member = db.query(models.Member).filter(
        models.Member.user_id == trader["user"].id, models.Member.server_id == server.id
    ).one()
    member.role_id = factory.role(server, "admin").id
    db.commit()

    SubscriptionSyncService(db).handle_event(_sub_event("customer.subscription.created", trader["user"]))
    assert _role_names(db, trader["user"]) == ["admin", "premium"]


def test_user_resolved_by_customer_id_then_email(db, trader):
    service = SubscriptionSyncService(db)
    service.handle_event(_sub_event("customer.subscription.created", trader["user"]))
    # No metadata: found through the customer id already on file
    result = service.handle_event(_sub_event("customer.subscription.updated", status="past_due"))
    assert result["handled"] is True
    assert db.query(models.Subscription).one().status == "past_due"


def test_user_resolved_by_expanded_customer_email(db, trader):
    event = _sub_event(
        "customer.subscription.created",
        customer={"id": "cus_999", "email": "Trader@Example.com"},
    )
    result = SubscriptionSyncService(db).handle_event(event)
    assert result["handled"] is True
    assert db.query(models.Subscription).one().user_id == trader["user"].id


def test_unknown_user_is_acknowledged(db, trader):
    result = SubscriptionSyncService(db).handle_event(
        _sub_event("customer.subscription.created", customer="cus_unknown")
    )
    assert result == {"handled": False, "reason": "user_not_found", "type": "customer.subscription.created"}
    assert db.query(models.Subscription).count() == 0


def test_unhandled_event_type_is_ignored(db):
    result = SubscriptionSyncService(db).handle_event({"id": "evt_x", "type": "charge.refunded", "data": {"object": {}}})
    assert result["handled"] is False
    assert result["reason"] == "ignored_event_type"


class TestInvoices:
    def test_payment_failed_marks_past_due_then_unpaid(self, db, trader):
        service = SubscriptionSyncService(db)
        service.handle_event(_sub_event("customer.subscription.created", trader["user"]))

        service.handle_event(_invoice_event("invoice.payment_failed", attempt_count=1))
        assert db.query(models.Subscription).one().status == "past_due"
        assert _role_names(db, trader["user"]) == ["free", "free"]

        service.handle_event(_invoice_event("invoice.payment_failed", attempt_count=3))
        assert db.query(models.Subscription).one().status == "unpaid"

        types = [n.event_type for n in db.query(models.Notification).all()]
        assert types == ["payment_failed", "payment_failed"]

    def test_payment_succeeded_restores_premium(self, db, trader):
        service = SubscriptionSyncService(db)
        service.handle_event(_sub_event("customer.subscription.created", trader["user"], status="past_due"))
        assert _role_names(db, trader["user"]) == ["free", "free"]

        service.handle_event(_invoice_event("invoice.payment_succeeded"))
        assert db.query(models.Subscription).one().status == "active"
        assert _role_names(db, trader["user"]) == ["premium", "premium"]
        assert db.query(models.Notification).filter(
            models.Notification.event_type == "subscription_renewed"
        ).count() == 1

    def test_invoice_without_subscription_is_acknowledged(self, db):
        result = SubscriptionSyncService(db).handle_event(_invoice_event("invoice.payment_failed", sub_id=None))
        assert result["handled"] is False
        assert result["reason"] == "no_subscription"

    def test_invoice_for_new_subscription_uses_parent_metadata(self, db, trader):
        event = _invoice_event(
            "invoice.payment_succeeded",
            sub_id=None,
            customer="cus_new",
            parent={"subscription_details": {"subscription": "sub_new", "metadata": {"user_id": str(trader["user"].id)}}},
        )
        result = SubscriptionSyncService(db).handle_event(event)
        assert result["handled"] is True
        record = db.query(models.Subscription).one()
        assert record.stripe_subscription_id == "sub_new"
        assert record.status == "active"


def test_grace_period_keeps_past_due_premium(db, trader, monkeypatch):
    monkeypatch.setenv("SUBSCRIPTION_GRACE_PERIOD_DAYS", "3")
    SubscriptionSyncService(db).handle_event(
        _sub_event("customer.subscription.created", trader["user"], status="past_due")
    )
    assert _role_names(db, trader["user"]) == ["premium", "premium"]


def test_subscription_notifications_flag(db, trader, monkeypatch):
    from tradingroom.utils.feature_flags import refresh_feature_flag_cache

    monkeypatch.setenv("FEATURE_SUBSCRIPTION_NOTIFICATIONS_ENABLED", "false")
    refresh_feature_flag_cache()
    service = SubscriptionSyncService(db)
    service.handle_event(_sub_event("customer.subscription.created", trader["user"]))
    service.handle_event(_sub_event("customer.subscription.deleted", trader["user"]))
    assert db.query(models.Notification).count() == 0


def test_role_sync_is_audited(db, trader):
    SubscriptionSyncService(db).handle_event(_sub_event("customer.subscription.created", trader["user"]))
    rows = db.query(models.AuditLog).filter(models.AuditLog.action_type == "subscription_role_sync").all()
    assert len(rows) == 2


def test_handler_failure_rolls_back(db, trader, monkeypatch):
    service = SubscriptionSyncService(db)

    def boom(*args, **kwargs):
        raise RuntimeError("sync failed")

    monkeypatch.setattr(service, "sync_user_roles", boom)
    with pytest.raises(RuntimeError):
        service.handle_event(_sub_event("customer.subscription.created", trader["user"]))
    assert db.query(models.Subscription).count() == 0


def test_new_member_joins_with_premium_role(db, factory, trader):
    service = SubscriptionSyncService(db)
    service.handle_event(_sub_event("customer.subscription.created", trader["user"]))
    third = factory.server(trader["owner"], name="Gamma")
    assert service.role_for_new_member(third.id, trader["user"].id).name == "premium"
    assert service.role_for_new_member(third.id, trader["owner"].id).name == "free"


class TestReplacedSubscription:
    def test_late_event_for_old_subscription_keeps_new_one(self, db, trader):
        service = SubscriptionSyncService(db)
        service.handle_event(_sub_event("customer.subscription.created", trader["user"], sub_id="sub_old"))
        service.handle_event(_sub_event("customer.subscription.deleted", trader["user"], sub_id="sub_old"))
        service.handle_event(_sub_event("customer.subscription.created", trader["user"], sub_id="sub_new"))

        result = service.handle_event(
            _sub_event("customer.subscription.updated", trader["user"], sub_id="sub_old", status="canceled")
        )
        assert result["handled"] is False
        assert result["reason"] == "superseded_subscription"

        record = db.query(models.Subscription).one()
        assert (record.stripe_subscription_id, record.status) == ("sub_new", "active")
        assert _role_names(db, trader["user"]) == ["premium", "premium"]

    def test_failed_invoice_for_old_subscription_is_ignored(self, db, trader):
        service = SubscriptionSyncService(db)
        service.handle_event(_sub_event("customer.subscription.created", trader["user"], sub_id="sub_new"))
        event = _invoice_event(
            "invoice.payment_failed",
            sub_id="sub_old",
            attempt_count=3,
            parent={"subscription_details": {"metadata": {"user_id": str(trader["user"].id)}}},
        )
        assert service.handle_event(event)["handled"] is False
        assert db.query(models.Subscription).one().status == "active"

    def test_created_event_adopts_new_subscription(self, db, trader):
        service = SubscriptionSyncService(db)
        service.handle_event(_sub_event("customer.subscription.created", trader["user"], sub_id="sub_old"))
        service.handle_event(
            _sub_event("customer.subscription.created", trader["user"], sub_id="sub_new", status="trialing")
        )
        record = db.query(models.Subscription).one()
        assert (record.stripe_subscription_id, record.status) == ("sub_new", "trialing")

    def test_lapsed_row_is_taken_over_by_other_subscription(self, db, trader):
        service = SubscriptionSyncService(db)
        service.handle_event(_sub_event("customer.subscription.created", trader["user"], sub_id="sub_old"))
        service.handle_event(_sub_event("customer.subscription.deleted", trader["user"], sub_id="sub_old"))

        result = service.handle_event(_sub_event("customer.subscription.updated", trader["user"], sub_id="sub_new"))
        assert result["handled"] is True
        assert db.query(models.Subscription).one().stripe_subscription_id == "sub_new"
        assert _role_names(db, trader["user"]) == ["premium", "premium"]


def test_sync_never_grants_admin_through_premium_role(db, trader):
    first = trader["servers"][0]
    tampered = (
        db.query(models.Role)
        .filter(models.Role.server_id == first.id, models.Role.name == "premium")
        .one()
    )
    tampered.is_admin = True
    db.commit()

    SubscriptionSyncService(db).handle_event(_sub_event("customer.subscription.created", trader["user"]))

    roles = (
        db.query(models.Role)
        .join(models.Member, models.Member.role_id == models.Role.id)
        .filter(models.Member.user_id == trader["user"].id)
        .all()
    )
    assert [r.name for r in roles] == ["premium", "premium"]
    assert not any(r.is_admin for r in roles)
