import pytest

from tradingroom.utils.feature_flags import (
    FeatureFlagKey,
    get_feature_flags,
    is_feature_enabled,
    mention_notifications_enabled,
    refresh_feature_flag_cache,
    subscription_notifications_enabled,
)

_ENV_FLAG_MAPPING = {
    "FEATURE_MENTION_NOTIFICATIONS_ENABLED": "mention_notifications_enabled",
    "FEATURE_SUBSCRIPTION_NOTIFICATIONS_ENABLED": "subscription_notifications_enabled",
}


@pytest.fixture(autouse=True)
def reset_flags(monkeypatch):
    for env_name in _ENV_FLAG_MAPPING:
        monkeypatch.delenv(env_name, raising=False)
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


def test_flags_default_true():
    assert get_feature_flags() == {
        "mention_notifications_enabled": True,
        "subscription_notifications_enabled": True,
    }
    assert mention_notifications_enabled() is True
    assert subscription_notifications_enabled() is True


@pytest.mark.parametrize("env_name,flag_key", list(_ENV_FLAG_MAPPING.items()))
def test_flag_disabled_via_env(monkeypatch, env_name: str, flag_key: FeatureFlagKey):
    monkeypatch.setenv(env_name, "off")
    refresh_feature_flag_cache()
    assert is_feature_enabled(flag_key) is False


def test_unrecognized_value_keeps_default(monkeypatch):
    monkeypatch.setenv("FEATURE_MENTION_NOTIFICATIONS_ENABLED", "maybe")
    refresh_feature_flag_cache()
    assert mention_notifications_enabled() is True


def test_values_cached_until_refresh(monkeypatch):
    assert mention_notifications_enabled() is True
    monkeypatch.setenv("FEATURE_MENTION_NOTIFICATIONS_ENABLED", "false")
    assert mention_notifications_enabled() is True
    refresh_feature_flag_cache()
    assert mention_notifications_enabled() is False


def test_is_feature_enabled_uses_cached_values(monkeypatch):
    assert is_feature_enabled("mention_notifications_enabled") is True
    monkeypatch.setenv("FEATURE_MENTION_NOTIFICATIONS_ENABLED", "false")
    assert is_feature_enabled("mention_notifications_enabled") is True
    refresh_feature_flag_cache()
    assert is_feature_enabled("mention_notifications_enabled") is False
    assert is_feature_enabled.__doc__
