"""
SQLAlchemy Database Models

Marketplace entities:
- Users in three roles (buyer, seller, admin)
- Kitchens owned by sellers, located by a kitchen Address
- Menu items with images and ingredients
- Orders for one kitchen, delivered on a date and meal slot
- Subscription plans and buyer subscriptions
- Reviews of completed order items
- In-app notifications
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ghorer_khabar.database import Base


class UserRole(str, enum.Enum):
    """Marketplace roles."""
    BUYER = "BUYER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    DELIVERING = "DELIVERING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class MealTimeSlot(str, enum.Enum):
    """Named meal delivery windows."""
    BREAKFAST = "BREAKFAST"
    LUNCH = "LUNCH"
    SNACKS = "SNACKS"
    DINNER = "DINNER"


class SubscriptionStatus(str, enum.Enum):
    """Buyer subscription lifecycle, driven by chef actions."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


class NotificationType(str, enum.Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class User(Base):
    """A buyer, seller or admin account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    avatar = Column(String(500), nullable=True)
    role = Column(Enum(UserRole), default=UserRole.BUYER, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    addresses = relationship(
        "Address",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Address.id",
    )

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.role.value}>"


class Address(Base):
    """
    A geocoded place owned by a user.

    Buyers keep delivery addresses here; a seller's kitchen location is an
    Address flagged ``is_kitchen_address`` and referenced by exactly one
    Kitchen.
    """
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String(100), nullable=False)
    address = Column(Text, nullable=False)
    zone = Column(String(100), nullable=True, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)
    is_kitchen_address = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="addresses")

    def __repr__(self):
        return f"<Address #{self.id} - {self.label}>"


class Kitchen(Base):
    """
    A seller's home-cooking storefront.

    Lifecycle flags (``onboarding_completed``, ``is_verified``, ``is_active``,
    ``rejected_at``, ``suspended_at``) encode the onboarding state; see
    ``ghorer_khabar.services.onboarding``.
    """
    __tablename__ = "kitchens"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    seller_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    cover_image = Column(String(500), nullable=True)

    # =========================================================================
    # LOCATION
    # =========================================================================
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=True, unique=True)
    # Legacy location fields, superseded by address_id
    location = Column(Text, nullable=True)
    area = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # =========================================================================
    # IDENTITY VERIFICATION
    # =========================================================================
    nid_name = Column(String(150), nullable=True)
    nid_front_image = Column(String(500), nullable=True)
    nid_back_image = Column(String(500), nullable=True)

    # =========================================================================
    # ONBOARDING STATE
    # =========================================================================
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=False, nullable=False, index=True)
    is_open = Column(Boolean, default=True, nullable=False)
    rejection_reason = Column(Text, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    suspended_at = Column(DateTime(timezone=True), nullable=True)

    # =========================================================================
    # CAPACITY
    # =========================================================================
    max_capacity = Column(Integer, default=20, nullable=False)
    breakfast_capacity = Column(Integer, nullable=True)
    lunch_capacity = Column(Integer, nullable=True)
    snacks_capacity = Column(Integer, nullable=True)
    dinner_capacity = Column(Integer, nullable=True)
    min_prep_time_hours = Column(Integer, default=0, nullable=False)

    # =========================================================================
    # REPUTATION
    # =========================================================================
    rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    total_orders = Column(Integer, default=0, nullable=False)
    response_time = Column(Integer, default=0, nullable=False)  # minutes
    delivery_rate = Column(Float, default=0.0, nullable=False)
    kri_score = Column(Integer, default=50, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    seller = relationship("User", lazy="selectin")
    address = relationship("Address", lazy="selectin")

    @property
    def coordinates(self) -> tuple:
        """Kitchen lat/lng as a pair: the legacy fields when both are set, else the address."""
        if self.latitude is not None and self.longitude is not None:
            return self.latitude, self.longitude
        if self.address is not None:
            return self.address.latitude, self.address.longitude
        return None, None

    def __repr__(self):
        return f"<Kitchen #{self.id} - {self.name}>"


class MenuItem(Base):
    """A dish cooked by a chef."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    chef_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True, index=True)
    price = Column(Float, nullable=False)
    prep_time = Column(Integer, default=0, nullable=False)  # minutes
    spice_level = Column(String(20), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    images = relationship(
        "MenuItemImage",
        cascade="all, delete-orphan",
        order_by="MenuItemImage.position",
        lazy="selectin",
    )
    ingredients = relationship(
        "Ingredient",
        cascade="all, delete-orphan",
        order_by="Ingredient.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name}>"


class MenuItemImage(Base):
    __tablename__ = "menu_item_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    position = Column(Integer, default=0, nullable=False)


class Ingredient(Base):
    __tablename__ = "ingredients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    quantity = Column(Float, nullable=True)
    unit = Column(String(20), nullable=True)


class SubscriptionPlan(Base):
    """
    A kitchen's recurring weekly meal schedule.

    ``weekly_schedule`` maps a weekday name to a slot name to a menu item id,
    e.g. ``{"SATURDAY": {"LUNCH": 12, "DINNER": 14}}``.
    """
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    kitchen_id = Column(Integer, ForeignKey("kitchens.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    meals_per_day = Column(Integer, default=1, nullable=False)
    servings_per_meal = Column(Integer, default=1, nullable=False)
    weekly_schedule = Column(JSON, default=dict, nullable=False)
    cover_image = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    subscriber_count = Column(Integer, default=0, nullable=False)
    monthly_revenue = Column(Float, default=0.0, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    kitchen = relationship("Kitchen", lazy="selectin")

    def __repr__(self):
        return f"<SubscriptionPlan #{self.id} - {self.name}>"


class Order(Base):
    """
    A buyer's purchase of menu items from exactly one kitchen,
    delivered on a date and meal slot.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    kitchen_id = Column(Integer, ForeignKey("kitchens.id"), nullable=False, index=True)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    # =========================================================================
    # DELIVERY
    # =========================================================================
    delivery_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=True)
    delivery_date = Column(Date, nullable=True, index=True)
    delivery_time_slot = Column(Enum(MealTimeSlot), nullable=True)
    distance_km = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    platform_fee = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )
    kitchen = relationship("Kitchen", lazy="selectin")

    def __repr__(self):
        return f"<Order #{self.id} - kitchen {self.kitchen_id} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)

    menu_item = relationship("MenuItem", lazy="selectin")


class UserSubscription(Base):
    """A buyer's enrollment in a subscription plan, with a pricing snapshot."""
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False, index=True)
    kitchen_id = Column(Integer, ForeignKey("kitchens.id"), nullable=False, index=True)
    status = Column(
        Enum(SubscriptionStatus),
        default=SubscriptionStatus.PENDING,
        nullable=False,
        index=True
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    delivery_instructions = Column(Text, nullable=True)
    use_chef_containers = Column(Boolean, default=True, nullable=False)

    # Pricing snapshot
    monthly_price = Column(Float, nullable=False)
    delivery_fee = Column(Float, nullable=False)
    discount = Column(Float, default=0.0, nullable=False)
    total_amount = Column(Float, nullable=False)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", lazy="selectin")
    plan = relationship("SubscriptionPlan", lazy="selectin")

    def __repr__(self):
        return f"<UserSubscription #{self.id} - {self.status.value}>"


class Review(Base):
    """A rating left once per purchased order item."""
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "order_item_id", name="uq_review_user_order_item"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", lazy="selectin")


class Notification(Base):
    """
    In-app notification for a user, a kitchen, or (neither set) the admins.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    kitchen_id = Column(Integer, ForeignKey("kitchens.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(Enum(NotificationType), default=NotificationType.INFO, nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
