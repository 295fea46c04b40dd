import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class Subscription(Base):
    """Local mirror of a Stripe subscription; one per user."""
    __tablename__ = 'subscriptions'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    stripe_subscription_id = Column(String(255), nullable=False, unique=True)
    stripe_customer_id = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False, default='free')
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_subscriptions_stripe_customer_id', 'stripe_customer_id'),
        CheckConstraint(
            "status in ('free','incomplete','incomplete_expired','trialing','active',"
            "'past_due','canceled','unpaid','paused')",
            name='ck_subscriptions_status',
        ),
    )
