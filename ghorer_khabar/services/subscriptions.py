"""
Subscription Request Lifecycle

A buyer's request starts PENDING; the chef either approves it (ACTIVE,
``confirmed_at`` set) or rejects it (CANCELLED, ``cancelled_at`` and a
reason set). Exactly one of the two timestamps is ever set.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.core.errors import InvalidTransitionError
from ghorer_khabar.models import SubscriptionPlan, SubscriptionStatus, UserSubscription

DEFAULT_REJECTION_REASON = "Rejected by chef"


@dataclass
class SubscriptionQuote:
    """Pricing snapshot stored on the subscription at request time."""
    monthly_price: float
    delivery_fee: float
    discount: float
    total_amount: float


def quote(plan: SubscriptionPlan, discount: float = 0.0) -> SubscriptionQuote:
    delivery_fee = float(get_settings().subscription_delivery_fee)
    monthly_price = float(plan.price)
    return SubscriptionQuote(
        monthly_price=monthly_price,
        delivery_fee=delivery_fee,
        discount=discount,
        total_amount=round(monthly_price + delivery_fee - discount, 2),
    )


def _require_pending(subscription: UserSubscription) -> None:
    if subscription.status != SubscriptionStatus.PENDING:
        raise InvalidTransitionError(
            f"Subscription is already {subscription.status.value.lower()}",
            current_state=subscription.status.value,
        )


def approve(subscription: UserSubscription, now: Optional[datetime] = None) -> UserSubscription:
    """PENDING -> ACTIVE."""
    _require_pending(subscription)
    subscription.status = SubscriptionStatus.ACTIVE
    subscription.confirmed_at = now or datetime.now(timezone.utc)
    return subscription


def reject(
    subscription: UserSubscription,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> UserSubscription:
    """PENDING -> CANCELLED."""
    _require_pending(subscription)
    subscription.status = SubscriptionStatus.CANCELLED
    subscription.cancelled_at = now or datetime.now(timezone.utc)
    subscription.cancellation_reason = reason or DEFAULT_REJECTION_REASON
    return subscription
