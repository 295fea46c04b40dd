"""
Stripe subscription sync.

Webhook events update the local ``subscriptions`` mirror, then every server
membership of the affected user is moved to the server's ``premium`` or
``free`` role. Members holding an admin role keep it. Each event is applied
in a single transaction.
"""

import os
import uuid
import logging
from datetime import datetime, UTC
from typing import Optional, Dict, Any, Tuple

import stripe
from sqlalchemy.orm import Session

from tradingroom import audit
from tradingroom.audit import AuditAction
from tradingroom.db import models
from tradingroom.db.models import as_utc
from tradingroom.db.repositories import roles as role_repo
from tradingroom.db.repositories import servers as server_repo
from tradingroom.services.notification_service import (
    NotificationService,
    EVENT_SUBSCRIPTION_CANCELLED,
    EVENT_PAYMENT_FAILED,
    EVENT_SUBSCRIPTION_RENEWED,
)
from tradingroom.utils.feature_flags import subscription_notifications_enabled
from tradingroom.utils.role_permissions import ROLE_FREE, ROLE_PREMIUM
from tradingroom.utils.runtime import subscription_grace_period_days
from tradingroom.utils.subscription_status import (
    STATUS_ACTIVE,
    STATUS_CANCELED,
    STATUS_PAST_DUE,
    STATUS_UNPAID,
    STATUS_INCOMPLETE,
    STATUS_INCOMPLETE_EXPIRED,
    STATUS_PAUSED,
    PREMIUM_STATUSES,
    map_stripe_status,
    status_after_payment_failure,
    is_premium,
)

logger = logging.getLogger("tradingroom.subscriptions")

SUBSCRIPTION_EVENTS = frozenset({
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
})
INVOICE_SUCCEEDED = "invoice.payment_succeeded"
INVOICE_FAILED = "invoice.payment_failed"

_LAPSED_STATUSES = frozenset({
    STATUS_PAST_DUE,
    STATUS_UNPAID,
    STATUS_CANCELED,
    STATUS_INCOMPLETE,
    STATUS_INCOMPLETE_EXPIRED,
    STATUS_PAUSED,
})


def _timestamp(value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), UTC)


def _customer_id(customer) -> Optional[str]:
    """Stripe sends either the id or, when expanded, the customer object."""
    if customer is None:
        return None
    if isinstance(customer, str):
        return customer
    return customer.get("id")


def _period_end(subscription: Dict[str, Any]) -> Optional[datetime]:
    """current_period_end moved from the subscription onto its items in newer API versions."""
    value = subscription.get("current_period_end")
    if value is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            value = items[0].get("current_period_end")
    return _timestamp(value)


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    sub = invoice.get("subscription")
    if sub is None:
        details = ((invoice.get("parent") or {}).get("subscription_details") or {})
        sub = details.get("subscription")
    if isinstance(sub, dict):
        return sub.get("id")
    return sub


def _invoice_metadata(invoice: Dict[str, Any]) -> Dict[str, Any]:
    details = ((invoice.get("parent") or {}).get("subscription_details") or {})
    return details.get("metadata") or (invoice.get("subscription_details") or {}).get("metadata") or {}


def _invoice_period_end(invoice: Dict[str, Any]) -> Optional[datetime]:
    lines = (invoice.get("lines") or {}).get("data") or []
    if lines:
        return _timestamp((lines[0].get("period") or {}).get("end"))
    return None


class SubscriptionSyncService:

    def __init__(self, db: Session):
        self.db = db

    # === Webhook entry point ===

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a verified Stripe event.

        Returns a small summary dict; ``handled`` is False for ignored event
        types and for events whose user cannot be resolved. Any exception
        rolls the transaction back and propagates.
        """
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}
        try:
            if event_type in SUBSCRIPTION_EVENTS:
                result = self._handle_subscription(event_type, obj)
            elif event_type in (INVOICE_SUCCEEDED, INVOICE_FAILED):
                result = self._handle_invoice(event_type, obj)
            else:
                logger.info("Ignoring Stripe event type=%s id=%s", event_type, event.get("id"))
                return {"handled": False, "reason": "ignored_event_type", "type": event_type}
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to apply Stripe event type=%s id=%s", event_type, event.get("id"))
            raise
        result["type"] = event_type
        return result

    def _handle_subscription(self, event_type: str, sub: Dict[str, Any]) -> Dict[str, Any]:
        stripe_subscription_id = sub.get("id")
        customer_id = _customer_id(sub.get("customer"))
        if event_type == "customer.subscription.deleted":
            status = STATUS_CANCELED
        else:
            status = map_stripe_status(sub.get("status"))

        user = self.resolve_user(sub.get("metadata"), customer_id, sub.get("customer"))
        if user is None:
            logger.warning(
                "No user for Stripe subscription=%s customer=%s; acknowledging", stripe_subscription_id, customer_id
            )
            return {"handled": False, "reason": "user_not_found"}

        record, previous = self.upsert_subscription(
            user,
            stripe_subscription_id=stripe_subscription_id,
            stripe_customer_id=customer_id,
            status=status,
            current_period_end=_period_end(sub),
            cancel_at_period_end=bool(sub.get("cancel_at_period_end")),
            adopt=event_type == "customer.subscription.created",
        )
        if record is None:
            return {"handled": False, "reason": "superseded_subscription"}
        sync = self.sync_user_roles(user.id, commit=False)
        self._notify_transition(user.id, previous, status)
        return {"handled": True, "status": status, **sync}

    def _handle_invoice(self, event_type: str, invoice: Dict[str, Any]) -> Dict[str, Any]:
        stripe_subscription_id = _invoice_subscription_id(invoice)
        if not stripe_subscription_id:
            logger.info("Invoice %s has no subscription; acknowledging", invoice.get("id"))
            return {"handled": False, "reason": "no_subscription"}

        if event_type == INVOICE_SUCCEEDED:
            status = STATUS_ACTIVE
        else:
            status = status_after_payment_failure(invoice.get("attempt_count"))

        record = self._subscription_by_stripe_id(stripe_subscription_id)
        if record is not None:
            user = self.db.get(models.User, record.user_id)
        else:
            customer_id = _customer_id(invoice.get("customer"))
            user = self.resolve_user(
                _invoice_metadata(invoice), customer_id, invoice.get("customer"), invoice.get("customer_email")
            )
        if user is None:
            logger.warning("No user for Stripe invoice=%s subscription=%s; acknowledging", invoice.get("id"), stripe_subscription_id)
            return {"handled": False, "reason": "user_not_found"}

        period_end = _invoice_period_end(invoice) if event_type == INVOICE_SUCCEEDED else None
        record, previous = self.upsert_subscription(
            user,
            stripe_subscription_id=stripe_subscription_id,
            stripe_customer_id=_customer_id(invoice.get("customer")),
            status=status,
            current_period_end=period_end,
        )
        if record is None:
            return {"handled": False, "reason": "superseded_subscription"}
        sync = self.sync_user_roles(user.id, commit=False)
        renewal = event_type == INVOICE_SUCCEEDED and invoice.get("billing_reason") == "subscription_cycle"
        self._notify_transition(user.id, previous, status, renewal=renewal)
        return {"handled": True, "status": status, **sync}

    # === Local mirror ===

    def _subscription_by_stripe_id(self, stripe_subscription_id: str) -> Optional[models.Subscription]:
        return (
            self.db.query(models.Subscription)
            .filter(models.Subscription.stripe_subscription_id == stripe_subscription_id)
            .first()
        )

    def get_user_subscription(self, user_id: uuid.UUID) -> Optional[models.Subscription]:
        return self.db.query(models.Subscription).filter(models.Subscription.user_id == user_id).first()

    def upsert_subscription(
        self,
        user: models.User,
        *,
        stripe_subscription_id: str,
        stripe_customer_id: Optional[str],
        status: str,
        current_period_end: Optional[datetime] = None,
        cancel_at_period_end: Optional[bool] = None,
        adopt: bool = False,
    ) -> Tuple[Optional[models.Subscription], Optional[str]]:
        """Create or update the user's subscription row; returns (row, previous status).

        A user has one mirror row. An event for a different Stripe
        subscription only takes that row over when ``adopt`` is set (a
        ``created`` event) or the stored subscription no longer grants
        premium. Otherwise the event belongs to a replaced subscription and
        ``(None, None)`` is returned with the row untouched.
        """
        record = self._subscription_by_stripe_id(stripe_subscription_id)
        if record is not None and record.user_id != user.id:
            logger.warning(
                "Stripe subscription=%s already linked to user_id=%s; keeping existing link",
                stripe_subscription_id, record.user_id,
            )
        if record is None:
            record = self.get_user_subscription(user.id)
            if record is not None and not adopt and record.status in PREMIUM_STATUSES:
                logger.info(
                    "Ignoring event for subscription=%s; user_id=%s is on subscription=%s (%s)",
                    stripe_subscription_id, user.id, record.stripe_subscription_id, record.status,
                )
                return None, None

        if record is None:
            record = models.Subscription(
                user_id=user.id,
                stripe_subscription_id=stripe_subscription_id,
                stripe_customer_id=stripe_customer_id or "",
                status=status,
                current_period_end=current_period_end,
                cancel_at_period_end=bool(cancel_at_period_end),
            )
            self.db.add(record)
            self.db.flush()
            logger.info("Created subscription for user_id=%s status=%s", user.id, status)
            return record, None

        previous = record.status
        record.stripe_subscription_id = stripe_subscription_id
        if stripe_customer_id:
            record.stripe_customer_id = stripe_customer_id
        record.status = status
        if current_period_end is not None:
            record.current_period_end = current_period_end
        if cancel_at_period_end is not None:
            record.cancel_at_period_end = cancel_at_period_end
        self.db.flush()
        logger.info("Updated subscription for user_id=%s status %s -> %s", record.user_id, previous, status)
        return record, previous

    # === User resolution ===

    def resolve_user(
        self,
        metadata: Optional[Dict[str, Any]],
        customer_id: Optional[str],
        customer=None,
        email_hint: Optional[str] = None,
    ) -> Optional[models.User]:
        """Find the local user: metadata.user_id, then a known customer id, then the customer's email."""
        raw_user_id = (metadata or {}).get("user_id")
        if raw_user_id:
            try:
                user = self.db.get(models.User, uuid.UUID(str(raw_user_id)))
            except ValueError:
                logger.warning("Ignoring malformed metadata.user_id on Stripe object")
                user = None
            if user is not None:
                return user

        if customer_id:
            existing = (
                self.db.query(models.Subscription)
                .filter(models.Subscription.stripe_customer_id == customer_id)
                .first()
            )
            if existing is not None:
                return self.db.get(models.User, existing.user_id)

        email = email_hint
        if isinstance(customer, dict) and customer.get("email"):
            email = customer.get("email")
        if not email and customer_id:
            email = self._fetch_customer_email(customer_id)
        if not email:
            return None
        return self.db.query(models.User).filter(models.User.email == email.strip().lower()).first()

    def _fetch_customer_email(self, customer_id: str) -> Optional[str]:
        api_key = os.getenv("STRIPE_API_KEY")
        if not api_key:
            return None
        try:
            customer = stripe.Customer.retrieve(customer_id, api_key=api_key)
        except stripe.StripeError as e:
            logger.warning("Could not retrieve Stripe customer=%s: %s", customer_id, e)
            return None
        return getattr(customer, "email", None)

    # === Roles ===

    def user_is_premium(self, user_id: uuid.UUID) -> bool:
        record = self.get_user_subscription(user_id)
        if record is None:
            return False
        return is_premium(
            record.status,
            as_utc(record.current_period_end),
            grace_period_days=subscription_grace_period_days(),
        )

    def role_for_new_member(self, server_id: uuid.UUID, user_id: uuid.UUID) -> models.Role:
        """Role a user receives on joining: premium when subscribed, else the default role."""
        if self.user_is_premium(user_id):
            return role_repo.get_or_create_builtin_role(self.db, server_id, ROLE_PREMIUM)
        default_role = role_repo.get_default_role(self.db, server_id)
        if default_role is not None:
            return default_role
        return role_repo.get_or_create_builtin_role(self.db, server_id, ROLE_FREE)

    def sync_user_roles(
        self,
        user_id: uuid.UUID,
        *,
        actor_user_id: Optional[uuid.UUID] = None,
        commit: bool = True,
    ) -> Dict[str, Any]:
        """Move every non-admin membership of ``user_id`` onto the premium or free role."""
        premium = self.user_is_premium(user_id)
        target_name = ROLE_PREMIUM if premium else ROLE_FREE
        updated = 0
        for member in server_repo.get_memberships_for_user(self.db, user_id):
            current = role_repo.get_role(self.db, member.role_id)
            if current is not None and current.is_admin:
                continue
            target = role_repo.get_or_create_builtin_role(self.db, member.server_id, target_name)
            if member.role_id == target.id:
                continue
            previous_role_id = member.role_id
            member.role_id = target.id
            updated += 1
            audit.log_member(
                self.db,
                actor_user_id=actor_user_id or user_id,
                server_id=member.server_id,
                member_id=member.id,
                action=AuditAction.SUBSCRIPTION_ROLE_SYNC,
                metadata={
                    "from_role_id": str(previous_role_id),
                    "to_role_id": str(target.id),
                    "role": target_name,
                },
                commit=False,
            )
        self.db.flush()
        if commit:
            self.db.commit()
        if updated:
            logger.info("Synced roles for user_id=%s premium=%s updated=%d", user_id, premium, updated)
        return {"user_id": user_id, "premium": premium, "memberships_updated": updated}

    # === Status notifications ===

    def _notify_transition(self, user_id: uuid.UUID, previous: Optional[str], status: str, renewal: bool = False) -> None:
        if not subscription_notifications_enabled():
            return
        if previous == status and not renewal:
            return
        service = NotificationService(self.db)
        if status == STATUS_CANCELED:
            service.create_notification(
                user_id=user_id,
                event_type=EVENT_SUBSCRIPTION_CANCELLED,
                title="Subscription cancelled",
                message="Your premium subscription has ended. Premium channels are no longer available.",
                metadata={"status": status, "previous_status": previous},
                commit=False,
            )
        elif status in (STATUS_PAST_DUE, STATUS_UNPAID):
            service.create_notification(
                user_id=user_id,
                event_type=EVENT_PAYMENT_FAILED,
                title="Payment failed",
                message="We could not process your subscription payment. Please update your payment method.",
                metadata={"status": status, "previous_status": previous},
                commit=False,
            )
        elif status == STATUS_ACTIVE and (renewal or previous in _LAPSED_STATUSES):
            service.create_notification(
                user_id=user_id,
                event_type=EVENT_SUBSCRIPTION_RENEWED,
                title="Subscription renewed",
                message="Your premium subscription is active. Enjoy full access.",
                metadata={"status": status, "previous_status": previous},
                commit=False,
            )
