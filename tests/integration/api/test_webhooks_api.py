import hashlib
import hmac
import json
import time

import pytest

from tradingroom.db import models

SECRET = "whsec_test_secret"


def _sign(payload, secret=SECRET, timestamp=None):
    timestamp = timestamp or int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def _post(client, event, secret=SECRET, signature=None):
    payload = json.dumps(event)
    headers = {"Content-Type": "application/json", "Stripe-Signature": signature or _sign(payload, secret)}
    return client.post("/webhooks/stripe", content=payload, headers=headers)


def _event(user, event_type="customer.subscription.created", status="active"):
    return {
        "id": "evt_test",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": "sub_test",
                "object": "subscription",
                "customer": "cus_test",
                "status": status,
                "cancel_at_period_end": False,
                "current_period_end": int(time.time()) + 86400,
                "metadata": {"user_id": str(user.id)},
            }
        },
    }


@pytest.fixture(autouse=True)
def _secret(monkeypatch):
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", SECRET)


@pytest.fixture
def member(factory):
    owner = factory.user("owner@example.com")
    server = factory.server(owner)
    user = factory.user("subscriber@example.com")
    factory.join(server, user)
    return {"user": user, "server": server}


def test_valid_event_syncs_roles(client, db, factory, member):
    r = _post(client, _event(member["user"]))
    assert r.status_code == 200
    assert r.json() == {"received": True, "handled": True}

    row = db.query(models.Member).filter(models.Member.user_id == member["user"].id).one()
    assert row.role_id == factory.role(member["server"], "premium").id


def test_invalid_signature_rejected(client, db, member):
    r = _post(client, _event(member["user"]), secret="whsec_wrong")
    assert r.status_code == 400
    assert db.query(models.Subscription).count() == 0


def test_missing_signature_rejected(client, member):
    r = client.post("/webhooks/stripe", content=json.dumps(_event(member["user"])))
    assert r.status_code == 400


def test_missing_secret_is_503(client, member, monkeypatch):
    monkeypatch.delenv("STRIPE_WEBHOOK_SECRET")
    assert _post(client, _event(member["user"])).status_code == 503


def test_ignored_event_is_acknowledged(client):
    r = _post(client, {"id": "evt_x", "object": "event", "type": "charge.succeeded", "data": {"object": {}}})
    assert r.status_code == 200
    assert r.json() == {"received": True, "handled": False}


def test_webhook_needs_no_proxy_identity(client, member):
    # The guest write guard must not block Stripe
    r = _post(client, _event(member["user"], status="canceled"))
    assert r.status_code == 200


def test_non_utf8_body_is_rejected(client):
    body = b'{"id": "evt_bin", "type": "customer.subscription.created", "note": "\xff\xfe"}'
    timestamp = int(time.time())
    signature = hmac.new(SECRET.encode(), str(timestamp).encode() + b"." + body, hashlib.sha256).hexdigest()
    r = client.post(
        "/webhooks/stripe",
        content=body,
        headers={"Content-Type": "application/json", "Stripe-Signature": f"t={timestamp},v1={signature}"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid payload"
