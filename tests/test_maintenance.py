import random

from sqlalchemy import func, select

from ghorer_khabar.maintenance.addresses import (
    fix_default_addresses,
    geocode_kitchen_addresses,
    migrate_kitchen_addresses,
)
from ghorer_khabar.maintenance.admin import create_admin
from ghorer_khabar.maintenance.seed import DEMO_DISHES, seed_demo_dishes, seed_marketplace
from ghorer_khabar.models import (
    Address,
    Kitchen,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Review,
    SubscriptionPlan,
    User,
    UserRole,
)


# =============================================================================
# ADDRESSES
# =============================================================================

async def legacy_kitchen(factory, db, **legacy) -> Kitchen:
    seller = await factory.user(UserRole.SELLER)
    kitchen = Kitchen(seller_id=seller.id, name=f"Legacy {seller.id}", **legacy)
    db.add(kitchen)
    await db.commit()
    return kitchen


async def test_migration_creates_one_address_per_kitchen(factory, db):
    kitchen = await legacy_kitchen(
        factory, db, location="House 4, Road 2, Mirpur 10", area="Mirpur", latitude=23.8069, longitude=90.3687
    )
    await legacy_kitchen(factory, db)

    report = await migrate_kitchen_addresses(db)

    assert (report.found, report.succeeded, report.failed) == (1, 1, 0)
    address = (await db.execute(select(Address).where(Address.id == kitchen.address_id))).scalar_one()
    assert address.label == f"Kitchen: {kitchen.name}"
    assert address.address == "House 4, Road 2, Mirpur 10"
    assert address.zone == "Mirpur"
    assert (address.latitude, address.longitude) == (23.8069, 90.3687)
    assert address.is_kitchen_address and not address.is_default
    assert any("still have no address" in m for m in report.messages)


async def test_migration_is_idempotent(factory, db):
    await legacy_kitchen(factory, db, latitude=23.75, longitude=90.38)

    first = await migrate_kitchen_addresses(db)
    second = await migrate_kitchen_addresses(db)

    assert first.succeeded == 1
    assert second.found == 0
    assert await db.scalar(select(func.count(Address.id))) == 1


async def test_migrated_address_without_location_text(factory, db):
    kitchen = await legacy_kitchen(factory, db, latitude=23.75, longitude=90.38)

    await migrate_kitchen_addresses(db)

    address = await db.get(Address, kitchen.address_id)
    assert address.address == "Address not provided"


async def test_fix_default_addresses_picks_oldest(factory, db):
    buyer = await factory.user()
    first = await factory.address(buyer, is_default=False, label="Home")
    second = await factory.address(buyer, is_default=False, label="Office")
    settled = await factory.user()
    kept = await factory.address(settled, is_default=True)

    report = await fix_default_addresses(db)

    assert report.found == 1
    await db.refresh(first)
    await db.refresh(second)
    await db.refresh(kept)
    assert first.is_default and not second.is_default
    assert kept.is_default

    again = await fix_default_addresses(db)
    assert again.found == 0


async def test_geocode_kitchen_addresses(factory, db, geo_service):
    kitchen = await factory.kitchen(point=None)

    report = await geocode_kitchen_addresses(db, geo_service, delay=0)

    assert (report.found, report.succeeded) == (1, 1)
    address = await db.get(Address, kitchen.address_id)
    assert address.latitude is not None and address.longitude is not None


# =============================================================================
# ADMIN ACCOUNTS
# =============================================================================

async def test_create_admin_new_account(db):
    report = await create_admin(db, "  Admin@GhorerKhabar.com ", name="Ops")

    assert report.ok
    user = (await db.execute(select(User).where(User.email == "admin@ghorerkhabar.com"))).scalar_one()
    assert user.role == UserRole.ADMIN
    assert user.name == "Ops"


async def test_existing_user_needs_promote_flag(factory, db):
    buyer = await factory.user(email="rafiq@example.com")

    refused = await create_admin(db, "rafiq@example.com")
    assert not refused.ok
    assert "--promote" in refused.messages[0]

    promoted = await create_admin(db, "rafiq@example.com", promote=True)
    assert promoted.ok
    await db.refresh(buyer)
    assert buyer.role == UserRole.ADMIN

    again = await create_admin(db, "rafiq@example.com")
    assert again.ok
    assert "already an admin" in again.messages[0]


# =============================================================================
# SEEDING
# =============================================================================

async def test_seed_marketplace_invariants(db):
    summary = await seed_marketplace(db, rng=random.Random(7), orders_per_buyer=2)

    assert summary.kitchens == 5
    assert summary.buyers == 10
    assert summary.orders > 0

    # One default address per user
    users = (await db.execute(select(User))).scalars().all()
    for user in users:
        defaults = await db.scalar(
            select(func.count(Address.id)).where(Address.user_id == user.id, Address.is_default.is_(True))
        )
        assert defaults == 1, user.email

    # Every kitchen is ready to sell from its own address
    kitchens = (await db.execute(select(Kitchen))).scalars().all()
    for kitchen in kitchens:
        assert kitchen.is_verified and kitchen.is_active
        assert kitchen.address.is_kitchen_address
        assert kitchen.address.user_id == kitchen.seller_id

    dishes = (await db.execute(select(MenuItem))).scalars().all()
    assert all(d.images and d.ingredients for d in dishes)

    # Plan schedules only reference the kitchen's own dishes
    own = {k.id: {d.id for d in dishes if d.chef_id == k.seller_id} for k in kitchens}
    for plan in (await db.execute(select(SubscriptionPlan))).scalars().all():
        for meals in plan.weekly_schedule.values():
            assert set(meals.values()) <= own[plan.kitchen_id]

    # Reviews only cover completed purchases, once each
    rows = (await db.execute(
        select(Review.order_item_id, Order.status)
        .join(OrderItem, Review.order_item_id == OrderItem.id)
        .join(Order, OrderItem.order_id == Order.id)
    )).all()
    assert len(rows) == summary.reviews
    assert {status for _, status in rows} <= {OrderStatus.COMPLETED}
    assert len({item_id for item_id, _ in rows}) == len(rows)


async def test_seed_replaces_existing_data(factory, db):
    await factory.user(email="leftover@example.com")

    await seed_marketplace(db, rng=random.Random(1), orders_per_buyer=1)

    assert await db.scalar(select(User.id).where(User.email == "leftover@example.com")) is None


async def test_seed_demo_dishes(factory, db):
    kitchen = await factory.kitchen()

    report = await seed_demo_dishes(db, kitchen.id)
    assert report.succeeded == len(DEMO_DISHES)

    again = await seed_demo_dishes(db, kitchen.id)
    assert again.succeeded == 0

    names = (await db.execute(
        select(MenuItem.name).where(MenuItem.chef_id == kitchen.seller_id)
    )).scalars().all()
    assert sorted(names) == sorted(d[0] for d in DEMO_DISHES)


async def test_seed_demo_dishes_unknown_kitchen(db):
    report = await seed_demo_dishes(db, 999)

    assert not report.ok
    assert report.messages == ["Kitchen #999 not found"]
