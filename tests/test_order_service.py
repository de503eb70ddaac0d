from datetime import datetime, timezone

import pytest

from ghorer_khabar.core.errors import InvalidTransitionError
from ghorer_khabar.models import Order, OrderStatus
from ghorer_khabar.services.orders import cancel_by_buyer, price_order, transition_order


def order_in(status: OrderStatus) -> Order:
    return Order(status=status, subtotal=0, total=0)


def test_price_order_adds_delivery_and_platform_fees():
    pricing = price_order([(300, 2), (120, 1)], 25)

    assert pricing.subtotal == 720
    assert pricing.delivery_fee == 25
    assert pricing.platform_fee == 10
    assert pricing.total == 755


def test_full_kitchen_workflow():
    order = order_in(OrderStatus.PENDING)
    for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.DELIVERING):
        transition_order(order, status)
    assert order.completed_at is None

    finished = datetime(2026, 3, 1, 14, 0, tzinfo=timezone.utc)
    transition_order(order, OrderStatus.COMPLETED, now=finished)

    assert order.status == OrderStatus.COMPLETED
    assert order.completed_at == finished


def test_confirmed_order_may_skip_preparing():
    order = transition_order(order_in(OrderStatus.CONFIRMED), OrderStatus.DELIVERING)
    assert order.status == OrderStatus.DELIVERING


def test_pending_order_cannot_jump_to_completed():
    with pytest.raises(InvalidTransitionError, match="from PENDING to COMPLETED"):
        transition_order(order_in(OrderStatus.PENDING), OrderStatus.COMPLETED)


@pytest.mark.parametrize("terminal", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
def test_terminal_states_are_final(terminal):
    with pytest.raises(InvalidTransitionError):
        transition_order(order_in(terminal), OrderStatus.CONFIRMED)


def test_buyer_cancellation_window():
    assert cancel_by_buyer(order_in(OrderStatus.CONFIRMED)).status == OrderStatus.CANCELLED

    with pytest.raises(InvalidTransitionError, match=r"no longer be cancelled \(status: PREPARING\)"):
        cancel_by_buyer(order_in(OrderStatus.PREPARING))
