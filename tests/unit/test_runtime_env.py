import pytest

from tradingroom.utils.runtime import (
    dev_mode_active,
    notification_ttl_days,
    stripe_webhook_secret,
    subscription_grace_period_days,
)


def test_dev_mode_active_false_when_disabled(monkeypatch):
    monkeypatch.delenv("DEV_MODE", raising=False)
    assert dev_mode_active() is False


def test_dev_mode_active_true_for_localhost(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    assert dev_mode_active() is True


def test_dev_mode_allowed_host_list(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://devbox.internal:8000")
    monkeypatch.setenv("DEV_MODE_ALLOWED_HOSTS", "devbox.internal")
    assert dev_mode_active() is True


def test_dev_mode_active_raises_for_remote_host(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "https://trading.example.com")
    monkeypatch.delenv("DEV_MODE_ALLOWED_HOSTS", raising=False)
    with pytest.raises(RuntimeError):
        dev_mode_active()


def test_dev_mode_without_app_base_requires_allow(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.delenv("APP_BASE_URL", raising=False)
    monkeypatch.delenv("ALLOW_DEV_MODE", raising=False)
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    with pytest.raises(RuntimeError):
        dev_mode_active()

    monkeypatch.setenv("ALLOW_DEV_MODE", "true")
    assert dev_mode_active() is True


def test_notification_ttl_default_and_override(monkeypatch):
    monkeypatch.delenv("NOTIFICATION_TTL_DAYS", raising=False)
    assert notification_ttl_days() == 30
    monkeypatch.setenv("NOTIFICATION_TTL_DAYS", "7")
    assert notification_ttl_days() == 7


def test_notification_ttl_rejects_garbage(monkeypatch):
    monkeypatch.setenv("NOTIFICATION_TTL_DAYS", "a week")
    with pytest.raises(ValueError):
        notification_ttl_days()


def test_grace_period_never_negative(monkeypatch):
    monkeypatch.delenv("SUBSCRIPTION_GRACE_PERIOD_DAYS", raising=False)
    assert subscription_grace_period_days() == 0
    monkeypatch.setenv("SUBSCRIPTION_GRACE_PERIOD_DAYS", "-3")
    assert subscription_grace_period_days() == 0
    monkeypatch.setenv("SUBSCRIPTION_GRACE_PERIOD_DAYS", "7")
    assert subscription_grace_period_days() == 7


def test_stripe_webhook_secret_blank_is_none(monkeypatch):
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "")
    assert stripe_webhook_secret() is None
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_test")
    assert stripe_webhook_secret() == "whsec_test"
