"""
Demo marketplace data.

``seed_marketplace`` wipes the database and creates verified kitchens with
menus and plans, buyers with addresses, orders over the last four weeks
and reviews of completed orders. Every dish gets at least one image and
one ingredient, and every seller and buyer exactly one default address.

``seed_demo_dishes`` adds a fixed set of signature dishes to one existing
kitchen (TEMP_KITCHEN_ID).
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.database import Base
from ghorer_khabar.maintenance import MaintenanceReport
from ghorer_khabar.models import (
    Address,
    Ingredient,
    Kitchen,
    MealTimeSlot,
    MenuItem,
    MenuItemImage,
    Order,
    OrderItem,
    OrderStatus,
    Review,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
    UserRole,
    UserSubscription,
)
from ghorer_khabar.services import subscriptions
from ghorer_khabar.services.delivery import get_delivery_info
from ghorer_khabar.services.orders import price_order
from ghorer_khabar.services.ratings import refresh_kitchen_rating, refresh_menu_item_rating
from ghorer_khabar.services.slots import MEAL_TIME_SLOTS

logger = logging.getLogger(__name__)

DHAKA_CENTER = (23.8103, 90.4125)

SELLERS = [
    ("Fatima Rahman", "fatima.rahman@ghorerkhabar.com", "Fatima's Home Kitchen", "Dhanmondi", (23.7461, 90.3742)),
    ("Nasrin Akter", "nasrin.akter@ghorerkhabar.com", "Nasrin's Rannaghor", "Mohammadpur", (23.7662, 90.3589)),
    ("Rokeya Begum", "rokeya.begum@ghorerkhabar.com", "Ammu's Kitchen", "Mirpur", (23.8223, 90.3654)),
    ("Shahana Parvin", "shahana.parvin@ghorerkhabar.com", "Shahana's Deshi Khana", "Gulshan", (23.7925, 90.4078)),
    ("Jesmin Ara", "jesmin.ara@ghorerkhabar.com", "Jesmin's Pitha Ghor", "Banani", (23.7937, 90.4066)),
]

BUYER_NAMES = [
    "Tanvir Hasan", "Sadia Islam", "Rafiq Ahmed", "Nusrat Jahan", "Mahmud Hossain",
    "Farhana Yasmin", "Arif Chowdhury", "Tasnim Sultana", "Imran Kabir", "Mithila Das",
]

# name, category, price, prep minutes, ingredients (name, quantity, unit)
DISHES = [
    ("Mutton Kacchi Biryani", "Rice", 450, 120, [("Basmati Rice", 0.25, "kg"), ("Mutton", 0.2, "kg"), ("Potatoes", 0.1, "kg")]),
    ("Beef Bhuna Khichuri", "Rice", 320, 90, [("Chinigura Rice", 0.2, "kg"), ("Beef", 0.2, "kg"), ("Moong Dal", 0.05, "kg")]),
    ("Shorshe Ilish", "Fish", 550, 60, [("Hilsa Fish", 1, "pc"), ("Mustard Paste", 0.05, "kg")]),
    ("Rui Macher Kalia", "Fish", 280, 50, [("Rui Fish", 0.25, "kg"), ("Onions", 0.1, "kg")]),
    ("Chingri Malai Curry", "Fish", 480, 60, [("Prawns", 0.2, "kg"), ("Coconut Milk", 0.1, "l")]),
    ("Chicken Rezala", "Curry", 300, 60, [("Chicken", 0.25, "kg"), ("Yogurt", 0.05, "kg")]),
    ("Chicken Korma", "Curry", 290, 60, [("Chicken", 0.25, "kg"), ("Cashew Paste", 0.03, "kg")]),
    ("Dal Tadka", "Vegetarian", 120, 30, [("Masoor Dal", 0.1, "kg"), ("Garlic", 0.02, "kg")]),
    ("Begun Bhaji", "Vegetarian", 90, 20, [("Brinjal", 0.2, "kg"), ("Mustard Oil", 0.02, "l")]),
    ("Aloo Paratha with Curd", "Breakfast", 150, 30, [("Flour", 0.15, "kg"), ("Potatoes", 0.1, "kg"), ("Curd", 0.1, "kg")]),
    ("Puri with Aloo Bhaji", "Breakfast", 130, 25, [("Flour", 0.15, "kg"), ("Potatoes", 0.15, "kg")]),
    ("Mishti Doi", "Dessert", 80, 15, [("Milk", 0.25, "l"), ("Sugar", 0.05, "kg")]),
    ("Payesh", "Dessert", 100, 45, [("Milk", 0.3, "l"), ("Kalijira Rice", 0.05, "kg")]),
]

DEMO_DISHES = [
    ("Special Kacchi Biryani", "Rice", 450, 120, [("Basmati Rice", 0.25, "kg"), ("Mutton", 0.2, "kg"), ("Potatoes", 0.1, "kg")]),
    ("Beef Bhuna", "Curry", 380, 90, [("Beef", 0.25, "kg"), ("Onions", 0.15, "kg"), ("Spices Mix", 0.05, "pkt")]),
    ("Plain Polao & Chicken Roast", "Rice", 320, 75, [("Chinigura Rice", 0.2, "kg"), ("Chicken", 0.25, "kg"), ("Yogurt", 0.05, "kg")]),
    ("Shorshe Ilish", "Fish", 550, 60, [("Hilsa Fish", 1, "pc"), ("Mustard Paste", 0.05, "kg")]),
]

IMAGE_BASE = "https://images.unsplash.com"
DISH_IMAGES = [
    f"{IMAGE_BASE}/photo-1504674900247-0877df9cc836?auto=format&fit=crop&w=1200&q=80",
    f"{IMAGE_BASE}/photo-1467003909585-2f8a72700288?auto=format&fit=crop&w=1200&q=80",
    f"{IMAGE_BASE}/photo-1481931098730-318b6f776db0?auto=format&fit=crop&w=1200&q=80",
]
KITCHEN_COVERS = [
    f"{IMAGE_BASE}/photo-1504674900247-0877df9cc836?auto=format&fit=crop&w=1400&q=80",
    f"{IMAGE_BASE}/photo-1490645935967-10de6ba17061?auto=format&fit=crop&w=1400&q=80",
]

REVIEW_COMMENTS = [
    "Tastes just like home!",
    "Generous portion and perfectly spiced.",
    "Arrived hot and on time.",
    "Good, but a little too oily for me.",
    None,
]

WEEKDAYS = ["SATURDAY", "SUNDAY", "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY"]


@dataclass
class SeedSummary:
    sellers: int = 0
    buyers: int = 0
    kitchens: int = 0
    menu_items: int = 0
    plans: int = 0
    orders: int = 0
    reviews: int = 0
    skipped_reviews: int = 0
    subscriptions: int = 0

    def to_dict(self) -> dict:
        return dict(self.__dict__)


def _jitter(rng: random.Random, center: tuple[float, float], spread: float = 0.02) -> tuple[float, float]:
    return (
        round(center[0] + (rng.random() - 0.5) * spread, 6),
        round(center[1] + (rng.random() - 0.5) * spread, 6),
    )


def build_menu_item(chef_id: int, dish: tuple, rng: random.Random) -> MenuItem:
    name, category, price, prep_time, ingredients = dish
    return MenuItem(
        chef_id=chef_id,
        name=name,
        description=f"Home-cooked {name.lower()} made fresh to order.",
        category=category,
        price=float(price),
        prep_time=prep_time,
        spice_level=rng.choice(["Mild", "Medium", "Hot"]),
        is_available=True,
        images=[MenuItemImage(image_url=rng.choice(DISH_IMAGES), position=0)],
        ingredients=[Ingredient(name=n, quantity=q, unit=u) for n, q, u in ingredients],
    )


async def reset_database(db: AsyncSession) -> None:
    """Delete every row, children first."""
    for table in reversed(Base.metadata.sorted_tables):
        await db.execute(table.delete())
    await db.commit()
    # Deleted rows may still sit in the identity map and their ids get reused
    db.expunge_all()
    logger.info("Existing data removed")


async def _add_review(db: AsyncSession, review: Review) -> bool:
    """Insert one review; a duplicate for the same order item is skipped."""
    try:
        async with db.begin_nested():
            db.add(review)
        return True
    except IntegrityError:
        logger.info(f"Skipping duplicate review for order item #{review.order_item_id}")
        return False


async def seed_marketplace(
    db: AsyncSession,
    rng: Optional[random.Random] = None,
    orders_per_buyer: int = 3,
    now: Optional[datetime] = None,
) -> SeedSummary:
    """
    Replace all data with a demo marketplace.

    Args:
        db: Session to write with
        rng: Random source (seeded for reproducible data)
        orders_per_buyer: Historical orders per buyer
        now: Reference time for order history
    """
    rng = rng or random.Random(42)
    now = now or datetime.now(timezone.utc)
    summary = SeedSummary()

    await reset_database(db)

    # Sellers, kitchens and menus
    kitchens: list[Kitchen] = []
    menus: dict[int, list[MenuItem]] = {}

    for index, (name, email, kitchen_name, zone, center) in enumerate(SELLERS):
        seller = User(email=email, name=name, phone=f"+8801711{index:06d}", role=UserRole.SELLER)
        db.add(seller)
        await db.flush()
        summary.sellers += 1

        lat, lng = _jitter(rng, center, spread=0.005)
        kitchen = Kitchen(
            seller_id=seller.id,
            name=kitchen_name,
            description=f"Authentic home cooking from {zone}.",
            cover_image=KITCHEN_COVERS[index % len(KITCHEN_COVERS)],
            nid_name=name,
            nid_front_image=f"{IMAGE_BASE}/nid/{index}-front.jpg",
            nid_back_image=f"{IMAGE_BASE}/nid/{index}-back.jpg",
            onboarding_completed=True,
            is_verified=True,
            is_active=True,
            is_open=True,
            max_capacity=20,
            lunch_capacity=15,
            dinner_capacity=15,
            min_prep_time_hours=1,
            response_time=rng.randint(10, 60),
            delivery_rate=round(rng.uniform(0.85, 1.0), 2),
            address=Address(
                user_id=seller.id,
                label=f"Kitchen: {kitchen_name}",
                address=f"House {rng.randint(1, 99)}, Road {rng.randint(1, 30)}, {zone}, Dhaka",
                zone=zone,
                latitude=lat,
                longitude=lng,
                is_default=True,
                is_kitchen_address=True,
            ),
        )
        db.add(kitchen)

        dishes = rng.sample(DISHES, k=6)
        items = [build_menu_item(seller.id, dish, rng) for dish in dishes]
        db.add_all(items)
        await db.flush()

        kitchens.append(kitchen)
        menus[kitchen.id] = items
        summary.kitchens += 1
        summary.menu_items += len(items)

    # Subscription plans
    plans: list[SubscriptionPlan] = []
    for kitchen in kitchens:
        items = menus[kitchen.id]
        for plan_name, price, slots in (
            ("Lunch Box Monthly", 4500, [MealTimeSlot.LUNCH]),
            ("Full Day Meals", 8500, [MealTimeSlot.LUNCH, MealTimeSlot.DINNER]),
        ):
            schedule = {
                day: {slot.value: rng.choice(items).id for slot in slots}
                for day in WEEKDAYS
            }
            plan = SubscriptionPlan(
                kitchen_id=kitchen.id,
                name=plan_name,
                description=f"{plan_name} from {kitchen.name}",
                price=float(price),
                meals_per_day=len(slots),
                servings_per_meal=1,
                weekly_schedule=schedule,
                is_active=True,
                subscriber_count=0,
                monthly_revenue=0.0,
            )
            db.add(plan)
            plans.append(plan)
            summary.plans += 1
    await db.flush()

    # Buyers with a default address each
    buyers: list[tuple[User, Address]] = []
    for index, name in enumerate(BUYER_NAMES):
        buyer = User(
            email=f"{name.lower().replace(' ', '.')}@example.com",
            name=name,
            phone=f"+8801811{index:06d}",
            role=UserRole.BUYER,
        )
        db.add(buyer)
        await db.flush()

        lat, lng = _jitter(rng, DHAKA_CENTER, spread=0.06)
        address = Address(
            user_id=buyer.id,
            label="Home",
            address=f"Flat {rng.randint(1, 9)}{rng.choice('ABCD')}, Road {rng.randint(1, 40)}, Dhaka",
            latitude=lat,
            longitude=lng,
            is_default=True,
            is_kitchen_address=False,
        )
        db.add(address)
        await db.flush()
        buyers.append((buyer, address))
        summary.buyers += 1

    # Orders over the last four weeks
    completed: list[Order] = []
    for buyer, address in buyers:
        for _ in range(orders_per_buyer):
            reachable = []
            for candidate in kitchens:
                info = get_delivery_info(address.latitude, address.longitude, *candidate.coordinates)
                if info.available:
                    reachable.append((candidate, info))
            if not reachable:
                continue
            kitchen, delivery = rng.choice(reachable)
            picks = rng.sample(menus[kitchen.id], k=rng.randint(1, 3))
            lines = [(item, rng.randint(1, 3)) for item in picks]
            pricing = price_order([(item.price, qty) for item, qty in lines], delivery.charge)

            slot = rng.choice(list(MealTimeSlot))
            days_ago = rng.randint(1, 27)
            created_at = now - timedelta(days=days_ago, hours=rng.randint(1, 12))
            delivery_date = (now - timedelta(days=days_ago)).date()
            status = rng.choices(
                [OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.DELIVERING],
                weights=[8, 1, 1],
            )[0]

            order = Order(
                user_id=buyer.id,
                kitchen=kitchen,
                status=status,
                delivery_address_id=address.id,
                delivery_date=delivery_date,
                delivery_time_slot=slot,
                distance_km=delivery.distance,
                subtotal=pricing.subtotal,
                delivery_fee=pricing.delivery_fee,
                platform_fee=pricing.platform_fee,
                total=pricing.total,
                created_at=created_at,
                items=[OrderItem(menu_item=item, quantity=qty, price=item.price) for item, qty in lines],
            )
            if status == OrderStatus.COMPLETED:
                delivered_at = datetime.combine(delivery_date, MEAL_TIME_SLOTS[slot].time)
                order.completed_at = delivered_at.replace(tzinfo=timezone.utc) + timedelta(minutes=rng.randint(0, 90))
                completed.append(order)
            db.add(order)
            summary.orders += 1
    await db.flush()

    # Reviews of completed orders
    for order in completed:
        for order_item in order.items:
            if rng.random() < 0.3:
                continue
            review = Review(
                user_id=order.user_id,
                menu_item_id=order_item.menu_item_id,
                order_id=order.id,
                order_item_id=order_item.id,
                rating=rng.choices([3, 4, 5], weights=[1, 3, 4])[0],
                comment=rng.choice(REVIEW_COMMENTS),
                created_at=order.completed_at,
            )
            if await _add_review(db, review):
                summary.reviews += 1
            else:
                summary.skipped_reviews += 1

    # A few subscription requests, the first of each kitchen approved
    start = (now + timedelta(days=1)).date()
    for plan in plans[::2]:
        buyer, _ = rng.choice(buyers)
        pricing = subscriptions.quote(plan)
        subscription = UserSubscription(
            user_id=buyer.id,
            plan_id=plan.id,
            kitchen_id=plan.kitchen_id,
            status=SubscriptionStatus.PENDING,
            start_date=start,
            use_chef_containers=True,
            monthly_price=pricing.monthly_price,
            delivery_fee=pricing.delivery_fee,
            discount=pricing.discount,
            total_amount=pricing.total_amount,
        )
        if rng.random() < 0.5:
            subscriptions.approve(subscription, now=now)
            plan.subscriber_count += 1
            plan.monthly_revenue += subscription.monthly_price
        db.add(subscription)
        summary.subscriptions += 1
    await db.flush()

    # Aggregates
    for kitchen in kitchens:
        kitchen.total_orders = sum(1 for o in completed if o.kitchen_id == kitchen.id)
        for item in menus[kitchen.id]:
            await refresh_menu_item_rating(db, item)
        await refresh_kitchen_rating(db, kitchen)

    await db.commit()
    logger.info(f"Seed complete: {summary.to_dict()}")
    return summary


async def seed_demo_dishes(db: AsyncSession, kitchen_id: int) -> MaintenanceReport:
    """Add the signature demo dishes to one kitchen, skipping names it already has."""
    report = MaintenanceReport(task="seed_demo_dishes", found=len(DEMO_DISHES))

    kitchen = await db.get(Kitchen, kitchen_id)
    if kitchen is None:
        report.failed = len(DEMO_DISHES)
        report.messages.append(f"Kitchen #{kitchen_id} not found")
        return report

    existing = set((await db.execute(
        select(MenuItem.name).where(MenuItem.chef_id == kitchen.seller_id)
    )).scalars().all())

    rng = random.Random(kitchen_id)
    for dish in DEMO_DISHES:
        if dish[0] in existing:
            report.messages.append(f"{dish[0]} already on the menu")
            continue
        db.add(build_menu_item(kitchen.seller_id, dish, rng))
        report.succeeded += 1
        report.messages.append(f"Added {dish[0]} ({dish[2]} taka)")

    await db.commit()
    return report
