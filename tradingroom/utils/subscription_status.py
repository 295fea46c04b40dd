"""Stripe subscription status vocabulary and the premium entitlement rule."""

from datetime import datetime, timedelta, timezone
from typing import Optional

STATUS_FREE = "free"
STATUS_INCOMPLETE = "incomplete"
STATUS_INCOMPLETE_EXPIRED = "incomplete_expired"
STATUS_TRIALING = "trialing"
STATUS_ACTIVE = "active"
STATUS_PAST_DUE = "past_due"
STATUS_CANCELED = "canceled"
STATUS_UNPAID = "unpaid"
STATUS_PAUSED = "paused"

STRIPE_STATUSES = frozenset({
    STATUS_INCOMPLETE,
    STATUS_INCOMPLETE_EXPIRED,
    STATUS_TRIALING,
    STATUS_ACTIVE,
    STATUS_PAST_DUE,
    STATUS_CANCELED,
    STATUS_UNPAID,
    STATUS_PAUSED,
})

PREMIUM_STATUSES = frozenset({STATUS_ACTIVE, STATUS_TRIALING})

# Invoice attempts after which a failed payment marks the subscription unpaid
MAX_PAYMENT_ATTEMPTS = 3


def map_stripe_status(value: Optional[str]) -> str:
    """Map a Stripe status string onto the local vocabulary; unknown means free."""
    if not value:
        return STATUS_FREE
    normalized = value.strip().lower()
    if normalized in STRIPE_STATUSES:
        return normalized
    return STATUS_FREE


def status_after_payment_failure(attempt_count: Optional[int]) -> str:
    if (attempt_count or 0) >= MAX_PAYMENT_ATTEMPTS:
        return STATUS_UNPAID
    return STATUS_PAST_DUE


def is_premium(
    status: Optional[str],
    current_period_end: Optional[datetime] = None,
    *,
    grace_period_days: int = 0,
    now: Optional[datetime] = None,
) -> bool:
    """Return True when the status entitles the user to the premium role.

    ``past_due`` counts as premium only while ``now`` is within
    ``grace_period_days`` of ``current_period_end``; a grace period of zero
    disables this.
    """
    if status in PREMIUM_STATUSES:
        return True
    if status != STATUS_PAST_DUE or grace_period_days <= 0 or current_period_end is None:
        return False
    if current_period_end.tzinfo is None:
        current_period_end = current_period_end.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now <= current_period_end + timedelta(days=grace_period_days)
