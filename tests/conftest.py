"""
Shared fixtures.

Tests run against a throwaway SQLite database with the mock geo and
notification services and no ML service.
"""

import os
import tempfile
from datetime import date, datetime, timedelta, timezone

_TEST_DIR = tempfile.mkdtemp(prefix="ghorer_khabar_tests_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["ENV_MODE"] = "development"
os.environ["DATA_DIRECTORY"] = os.path.join(_TEST_DIR, "data")
os.environ["ML_SERVICE_URL"] = ""
os.environ["ML_SERVICE_API_KEY"] = ""

import httpx
import pytest

from ghorer_khabar.core.config import get_settings

get_settings.cache_clear()

from ghorer_khabar import models
from ghorer_khabar.auth import create_access_token
from ghorer_khabar.database import Base, async_session_maker, engine
from ghorer_khabar.main import app
from ghorer_khabar.models import (
    Address,
    Ingredient,
    Kitchen,
    MenuItem,
    MenuItemImage,
    Order,
    OrderItem,
    OrderStatus,
    MealTimeSlot,
    User,
    UserRole,
)
from ghorer_khabar.services.geo import MockGeoService, get_geo_service
from ghorer_khabar.services.notifications import MockNotificationService, get_notification_service
from ghorer_khabar.services.recommendations import get_recommendation_client

# Dhanmondi, and a point about 1.5 km away
KITCHEN_POINT = (23.7461, 90.3742)
NEARBY_POINT = (23.7580, 90.3800)


def tomorrow() -> date:
    return date.today() + timedelta(days=1)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


class Factory:
    """Creates committed rows for a test."""

    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def user(self, role: UserRole = UserRole.BUYER, name: str = None, email: str = None) -> User:
        n = self._next()
        user = User(
            email=email or f"{role.value.lower()}{n}@example.com",
            name=name or f"{role.value.title()} {n}",
            role=role,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def address(
        self,
        user: User,
        point=NEARBY_POINT,
        is_default: bool = True,
        label: str = "Home",
        is_kitchen_address: bool = False,
    ) -> Address:
        address = Address(
            user_id=user.id,
            label=label,
            address=f"{label} address of user #{user.id}, Dhaka",
            latitude=point[0] if point else None,
            longitude=point[1] if point else None,
            is_default=is_default,
            is_kitchen_address=is_kitchen_address,
        )
        self.db.add(address)
        await self.db.commit()
        return address

    async def kitchen(
        self,
        seller: User = None,
        point=KITCHEN_POINT,
        verified: bool = True,
        active: bool = True,
        is_open: bool = True,
        **fields,
    ) -> Kitchen:
        seller = seller or await self.user(UserRole.SELLER)
        kitchen = Kitchen(
            seller_id=seller.id,
            name=fields.pop("name", f"Kitchen of {seller.name}"),
            onboarding_completed=True,
            is_verified=verified,
            is_active=active,
            is_open=is_open,
            address=Address(
                user_id=seller.id,
                label="Kitchen",
                address="Road 27, Dhanmondi, Dhaka",
                zone=fields.pop("zone", "Dhanmondi"),
                latitude=point[0] if point else None,
                longitude=point[1] if point else None,
                is_default=True,
                is_kitchen_address=True,
            ),
            **fields,
        )
        self.db.add(kitchen)
        await self.db.commit()
        return kitchen

    async def menu_item(
        self,
        kitchen: Kitchen,
        name: str = "Chicken Rezala",
        price: float = 300,
        prep_time: int = 30,
        is_available: bool = True,
    ) -> MenuItem:
        item = MenuItem(
            chef_id=kitchen.seller_id,
            name=name,
            price=price,
            prep_time=prep_time,
            is_available=is_available,
            images=[MenuItemImage(image_url="https://img.example.com/dish.jpg", position=0)],
            ingredients=[Ingredient(name="Chicken", quantity=0.25, unit="kg")],
        )
        self.db.add(item)
        await self.db.commit()
        return item

    async def order(
        self,
        buyer: User,
        kitchen: Kitchen,
        lines: list,
        status: OrderStatus = OrderStatus.COMPLETED,
        delivery_date: date = None,
        slot: MealTimeSlot = MealTimeSlot.LUNCH,
        completed_at: datetime = None,
    ) -> Order:
        subtotal = sum(item.price * qty for item, qty in lines)
        delivery_date = delivery_date or date.today()
        if status == OrderStatus.COMPLETED and completed_at is None:
            completed_at = datetime.combine(delivery_date, datetime.min.time()).replace(
                hour=14, tzinfo=timezone.utc
            )
        order = Order(
            user_id=buyer.id,
            kitchen=kitchen,
            status=status,
            delivery_date=delivery_date,
            delivery_time_slot=slot,
            subtotal=subtotal,
            delivery_fee=15,
            platform_fee=10,
            total=subtotal + 25,
            completed_at=completed_at,
            items=[OrderItem(menu_item=item, quantity=qty, price=item.price) for item, qty in lines],
        )
        self.db.add(order)
        await self.db.commit()
        return order


@pytest.fixture(autouse=True)
async def database():
    """Fresh schema for every test."""
    assert models.User.__tablename__
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def db():
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def factory(db) -> Factory:
    return Factory(db)


@pytest.fixture
def geo_service() -> MockGeoService:
    return MockGeoService(failure_rate=0.0, min_latency=0, max_latency=0)


@pytest.fixture
def notifier() -> MockNotificationService:
    return MockNotificationService(failure_rate=0.0, min_latency=0, max_latency=0)


@pytest.fixture
async def client(geo_service, notifier):
    app.dependency_overrides[get_geo_service] = lambda: geo_service
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_recommendation_client] = lambda: None

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
