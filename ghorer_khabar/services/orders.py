"""
Order lifecycle and pricing.

Status flow:
    PENDING -> CONFIRMED -> PREPARING -> DELIVERING -> COMPLETED

A confirmed order may skip PREPARING, and any non-final order may be
cancelled by the kitchen. Buyers may cancel only before preparation starts.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.core.errors import InvalidTransitionError
from ghorer_khabar.models import Order, OrderStatus

ORDER_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PREPARING, OrderStatus.DELIVERING, OrderStatus.CANCELLED),
    OrderStatus.PREPARING: (OrderStatus.DELIVERING, OrderStatus.CANCELLED),
    OrderStatus.DELIVERING: (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}

BUYER_CANCELLABLE = (OrderStatus.PENDING, OrderStatus.CONFIRMED)


@dataclass
class OrderPricing:
    subtotal: float
    delivery_fee: float
    platform_fee: float
    total: float


def price_order(lines: Iterable[tuple[float, int]], delivery_fee: Optional[int]) -> OrderPricing:
    """
    Price a cart.

    Args:
        lines: (unit price, quantity) pairs
        delivery_fee: Fee from the delivery calculator
    """
    subtotal = round(sum(price * quantity for price, quantity in lines), 2)
    delivery = float(delivery_fee or 0)
    platform = float(get_settings().platform_fee)
    return OrderPricing(
        subtotal=subtotal,
        delivery_fee=delivery,
        platform_fee=platform,
        total=round(subtotal + delivery + platform, 2),
    )


def transition_order(order: Order, new_status: OrderStatus, now: Optional[datetime] = None) -> Order:
    """Move an order along the kitchen workflow; completion stamps ``completed_at``."""
    allowed = ORDER_TRANSITIONS.get(order.status, ())
    if new_status not in allowed:
        raise InvalidTransitionError(
            f"Invalid status transition from {order.status.value} to {new_status.value}",
            current_state=order.status.value,
        )

    order.status = new_status
    if new_status == OrderStatus.COMPLETED:
        order.completed_at = now or datetime.now(timezone.utc)
    return order


def cancel_by_buyer(order: Order) -> Order:
    if order.status not in BUYER_CANCELLABLE:
        raise InvalidTransitionError(
            f"Order can no longer be cancelled (status: {order.status.value})",
            current_state=order.status.value,
        )
    order.status = OrderStatus.CANCELLED
    return order
