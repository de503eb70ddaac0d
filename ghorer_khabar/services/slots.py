"""
Meal Slot Availability

Decides which meal slots a kitchen can still accept orders for on a
given delivery date. A slot is available when:
    1. The date is inside the ordering window (today plus the next days)
       and, for today, the slot time has not passed
    2. The kitchen has not reached its capacity for that slot
    3. Every dish can be prepared before the slot time
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.models import Kitchen, MealTimeSlot, MenuItem, Order, OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MealSlotConfig:
    time: time
    display_name: str


MEAL_TIME_SLOTS: dict[MealTimeSlot, MealSlotConfig] = {
    MealTimeSlot.BREAKFAST: MealSlotConfig(time(8, 0), "Breakfast"),
    MealTimeSlot.LUNCH: MealSlotConfig(time(13, 0), "Lunch"),
    MealTimeSlot.SNACKS: MealSlotConfig(time(16, 0), "Snacks"),
    MealTimeSlot.DINNER: MealSlotConfig(time(20, 0), "Dinner"),
}


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None


@dataclass
class SlotAvailability:
    """
    Availability of one meal slot.

    Attributes:
        slot: Slot identifier
        time: Delivery time as HH:MM
        display_name: Human readable slot name
        available: Whether an order can be placed
        capacity: Remaining orders the kitchen can take (never negative)
        reason: Why the slot is unavailable, if it is
    """
    slot: MealTimeSlot
    time: str
    display_name: str
    available: bool
    capacity: int
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "slot": self.slot.value,
            "time": self.time,
            "display_name": self.display_name,
            "available": self.available,
            "capacity": self.capacity,
            "reason": self.reason,
        }


def slot_capacity(kitchen: Kitchen, slot: MealTimeSlot) -> int:
    """Per-slot capacity, falling back to the kitchen's overall maximum."""
    per_slot = {
        MealTimeSlot.BREAKFAST: kitchen.breakfast_capacity,
        MealTimeSlot.LUNCH: kitchen.lunch_capacity,
        MealTimeSlot.SNACKS: kitchen.snacks_capacity,
        MealTimeSlot.DINNER: kitchen.dinner_capacity,
    }[slot]
    return per_slot if per_slot is not None else kitchen.max_capacity


def hours_until_delivery(
    delivery_date: date,
    slot: MealTimeSlot,
    now: Optional[datetime] = None,
) -> float:
    now = now or datetime.now()
    delivery_at = datetime.combine(delivery_date, MEAL_TIME_SLOTS[slot].time)
    return (delivery_at - now).total_seconds() / 3600


def validate_order_timing(
    delivery_date: date,
    slot: MealTimeSlot,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """Delivery date must be inside the ordering window; today's slot must not have passed."""
    now = now or datetime.now()
    today = now.date()
    last_day = today + timedelta(days=get_settings().order_window_days - 1)

    if delivery_date < today or delivery_date > last_day:
        return ValidationResult(
            valid=False,
            error="Orders can only be placed for today, tomorrow, or day after tomorrow.",
        )

    if delivery_date == today and hours_until_delivery(delivery_date, slot, now) < 0:
        return ValidationResult(
            valid=False,
            error=f"The {MEAL_TIME_SLOTS[slot].display_name} time slot for today has already passed.",
        )

    return ValidationResult(valid=True)


def can_order_dish_for_slot(
    dish_prep_minutes: int,
    kitchen_min_prep_hours: float,
    hours_until: float,
) -> bool:
    """Dish prep time plus the kitchen's minimum lead time fits before delivery."""
    total_prep_hours = (dish_prep_minutes or 0) / 60 + (kitchen_min_prep_hours or 0)
    return hours_until >= total_prep_hours


def validate_prep_time(
    kitchen: Kitchen,
    menu_items: Iterable[MenuItem],
    delivery_date: date,
    slot: MealTimeSlot,
    now: Optional[datetime] = None,
) -> ValidationResult:
    hours = hours_until_delivery(delivery_date, slot, now)
    if hours < 0:
        # Timing validation reports passed slots
        return ValidationResult(valid=True)

    for item in menu_items:
        prep_minutes = item.prep_time or 0
        if not can_order_dish_for_slot(prep_minutes, kitchen.min_prep_time_hours, hours):
            total = prep_minutes / 60 + kitchen.min_prep_time_hours
            return ValidationResult(
                valid=False,
                error=(
                    f"{item.name} requires {total:.1f} hours of preparation. "
                    f"Cannot be ordered for {MEAL_TIME_SLOTS[slot].display_name} "
                    f"(only {hours:.1f} hours until delivery)."
                ),
            )

    return ValidationResult(valid=True)


def evaluate_slots(
    kitchen: Kitchen,
    menu_items: list[MenuItem],
    delivery_date: date,
    order_counts: dict[MealTimeSlot, int],
    now: Optional[datetime] = None,
) -> list[SlotAvailability]:
    """
    Report availability and remaining capacity of every meal slot.

    Args:
        kitchen: Kitchen taking the order
        menu_items: Dishes in the cart
        delivery_date: Requested delivery date
        order_counts: Non-cancelled orders already booked per slot
        now: Reference time (defaults to the current local time)
    """
    now = now or datetime.now()
    results = []

    for slot, config in MEAL_TIME_SLOTS.items():
        timing = validate_order_timing(delivery_date, slot, now)
        hours = hours_until_delivery(delivery_date, slot, now)

        max_capacity = slot_capacity(kitchen, slot)
        booked = order_counts.get(slot, 0)
        capacity_available = booked < max_capacity

        can_prepare_all = timing.valid and hours > 0 and all(
            can_order_dish_for_slot(item.prep_time or 0, kitchen.min_prep_time_hours, hours)
            for item in menu_items
        )

        reason = None
        if not timing.valid:
            reason = timing.error
        elif not capacity_available:
            reason = f"Kitchen full ({booked}/{max_capacity} orders)"
        elif not can_prepare_all:
            reason = "Prep time insufficient for some dishes"

        results.append(SlotAvailability(
            slot=slot,
            time=config.time.strftime("%H:%M"),
            display_name=config.display_name,
            available=timing.valid and capacity_available and can_prepare_all,
            capacity=max(0, max_capacity - booked),
            reason=reason,
        ))

    return results


async def count_orders_by_slot(
    db: AsyncSession,
    kitchen_id: int,
    delivery_date: date,
) -> dict[MealTimeSlot, int]:
    """Count non-cancelled orders per slot for a kitchen on a date."""
    result = await db.execute(
        select(Order.delivery_time_slot, func.count(Order.id))
        .where(
            Order.kitchen_id == kitchen_id,
            Order.delivery_date == delivery_date,
            Order.status != OrderStatus.CANCELLED,
        )
        .group_by(Order.delivery_time_slot)
    )
    return {slot: count for slot, count in result.all() if slot is not None}


async def validate_order(
    db: AsyncSession,
    kitchen: Kitchen,
    menu_items: list[MenuItem],
    delivery_date: date,
    slot: MealTimeSlot,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """Timing, then capacity, then prep time; the first failure wins."""
    timing = validate_order_timing(delivery_date, slot, now)
    if not timing.valid:
        return timing

    counts = await count_orders_by_slot(db, kitchen.id, delivery_date)
    booked = counts.get(slot, 0)
    max_capacity = slot_capacity(kitchen, slot)
    if booked >= max_capacity:
        logger.info(f"Kitchen #{kitchen.id} full for {slot.value} on {delivery_date}")
        return ValidationResult(
            valid=False,
            error=(
                f"Kitchen is full for {MEAL_TIME_SLOTS[slot].display_name}. "
                f"{booked}/{max_capacity} orders already placed."
            ),
        )

    return validate_prep_time(kitchen, menu_items, delivery_date, slot, now)
