"""
Pydantic Schemas for Request/Response Validation

Grouped by resource:
- Addresses and kitchens
- Chef onboarding, menu and subscription plans
- Orders, delivery quotes and meal slots
- Subscriptions and reviews
- Admin and system responses
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ghorer_khabar.models import (
    MealTimeSlot,
    NotificationType,
    OrderStatus,
    SubscriptionStatus,
    UserRole,
)

WEEKDAYS = (
    "SATURDAY",
    "SUNDAY",
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
)


def normalize_weekdays(schedule: dict) -> dict:
    """Upper-case weekday keys and reject unknown days."""
    normalized = {}
    for day, slots in schedule.items():
        key = day.upper()
        if key not in WEEKDAYS:
            raise ValueError(f"Unknown weekday: {day}")
        normalized[key] = slots
    return normalized


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# USERS
# =============================================================================

class UserBrief(ORMModel):
    id: int
    name: Optional[str] = None
    email: str


class UserResponse(ORMModel):
    id: int
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    created_at: Optional[datetime] = None


class UserListResponse(BaseModel):
    total: int
    skip: int
    take: int
    users: list[UserResponse]


# =============================================================================
# ADDRESSES
# =============================================================================

class AddressCreate(BaseModel):
    """Buyer address; coordinates are geocoded from the text when omitted."""
    label: str = Field(..., min_length=1, max_length=100, examples=["Home"])
    address: str = Field(..., min_length=3, max_length=500, examples=["House 12, Road 5, Dhanmondi"])
    zone: Optional[str] = Field(None, max_length=100, examples=["Dhanmondi"])
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_default: bool = False

    @model_validator(mode="after")
    def check_coordinate_pair(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class AddressUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=3, max_length=500)
    zone: Optional[str] = Field(None, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_default: Optional[bool] = None


class AddressResponse(ORMModel):
    id: int
    label: str
    address: str
    zone: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_default: bool
    is_kitchen_address: bool
    created_at: Optional[datetime] = None


# =============================================================================
# MENU
# =============================================================================

class IngredientIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Basmati rice"])
    quantity: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=20, examples=["g"])


class IngredientOut(ORMModel):
    id: int
    name: str
    quantity: Optional[float] = None
    unit: Optional[str] = None


class MenuItemCreate(BaseModel):
    """A dish needs at least one image and one ingredient."""
    name: str = Field(..., min_length=2, max_length=150, examples=["Kacchi Biryani"])
    description: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=50, examples=["Rice"])
    price: float = Field(..., gt=0, examples=[350])
    prep_time: int = Field(0, ge=0, le=24 * 60, description="Minutes")
    spice_level: Optional[str] = Field(None, max_length=20)
    is_available: bool = True
    images: list[str] = Field(..., min_length=1)
    ingredients: list[IngredientIn] = Field(..., min_length=1)


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=50)
    price: Optional[float] = Field(None, gt=0)
    prep_time: Optional[int] = Field(None, ge=0, le=24 * 60)
    spice_level: Optional[str] = Field(None, max_length=20)
    is_available: Optional[bool] = None
    images: Optional[list[str]] = Field(None, min_length=1)
    ingredients: Optional[list[IngredientIn]] = Field(None, min_length=1)


class MenuItemResponse(ORMModel):
    id: int
    chef_id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float
    prep_time: int
    spice_level: Optional[str] = None
    is_available: bool
    rating: float
    review_count: int
    images: list[str] = []
    ingredients: list[IngredientOut] = []

    @field_validator("images", mode="before")
    @classmethod
    def image_urls(cls, v):
        return [getattr(image, "image_url", image) for image in v or []]


class MenuItemBrief(ORMModel):
    id: int
    name: str
    price: float


# =============================================================================
# KITCHENS & ONBOARDING
# =============================================================================

class OnboardingRequest(BaseModel):
    """Seller onboarding form."""
    kitchen_name: str = Field(..., min_length=2, max_length=150, examples=["Ammu's Kitchen"])
    description: Optional[str] = Field(None, max_length=2000)
    cover_image: Optional[str] = Field(None, max_length=500)
    address: str = Field(..., min_length=3, max_length=500, examples=["Flat 3B, Road 27, Dhanmondi"])
    zone: Optional[str] = Field(None, max_length=100, examples=["Dhanmondi"])
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    phone: Optional[str] = Field(None, max_length=20)
    nid_name: str = Field(..., min_length=2, max_length=150)
    nid_front_image: str = Field(..., min_length=1, max_length=500)
    nid_back_image: str = Field(..., min_length=1, max_length=500)


class OnboardingResponse(BaseModel):
    success: bool = True
    kitchen_id: int
    state: str
    message: str


class KitchenSummary(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    address: Optional[str] = None
    zone: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    rating: float
    review_count: int
    total_orders: int
    kri_score: int
    is_open: bool
    is_verified: bool
    distance_km: Optional[float] = None
    formatted_distance: Optional[str] = None
    delivery_fee: Optional[int] = None
    delivery_available: Optional[bool] = None


class KitchenListResponse(BaseModel):
    total: int
    kitchens: list[KitchenSummary]


class PlanResponse(ORMModel):
    id: int
    kitchen_id: int
    name: str
    description: Optional[str] = None
    price: float
    meals_per_day: int
    servings_per_meal: int
    weekly_schedule: dict
    cover_image: Optional[str] = None
    is_active: bool
    subscriber_count: int
    monthly_revenue: float
    rating: float


class KitchenDetail(KitchenSummary):
    seller_name: Optional[str] = None
    min_prep_time_hours: int = 0
    menu_items: list[MenuItemResponse] = []
    subscription_plans: list[PlanResponse] = []


class KitchenAdminResponse(BaseModel):
    id: int
    name: str
    seller_id: int
    seller_name: Optional[str] = None
    seller_email: Optional[str] = None
    address: Optional[str] = None
    zone: Optional[str] = None
    state: str
    onboarding_completed: bool
    is_verified: bool
    is_active: bool
    rejection_reason: Optional[str] = None
    nid_name: Optional[str] = None
    nid_front_image: Optional[str] = None
    nid_back_image: Optional[str] = None
    kri_score: int
    created_at: Optional[datetime] = None


class KitchenAdminListResponse(BaseModel):
    total: int
    skip: int
    take: int
    kitchens: list[KitchenAdminResponse]


class KitchenActionRequest(BaseModel):
    action: Literal["verify", "reject", "activate", "suspend"]
    reason: Optional[str] = Field(None, max_length=1000)


class KitchenStatusUpdate(BaseModel):
    """Chef's open/closed switch; a closed kitchen takes no new orders."""
    is_open: bool = Field(..., strict=True)


# =============================================================================
# SUBSCRIPTION PLANS
# =============================================================================

class PlanCreate(BaseModel):
    """
    Weekly schedule maps a weekday to a slot to one of the chef's menu items,
    e.g. ``{"SATURDAY": {"LUNCH": 12}}``.
    """
    name: str = Field(..., min_length=2, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    price: float = Field(..., gt=0, description="Monthly price in taka")
    meals_per_day: int = Field(1, ge=1, le=4)
    servings_per_meal: int = Field(1, ge=1, le=20)
    weekly_schedule: dict[str, dict[MealTimeSlot, int]] = Field(default_factory=dict)
    cover_image: Optional[str] = Field(None, max_length=500)
    is_active: bool = True

    @field_validator("weekly_schedule")
    @classmethod
    def validate_days(cls, v: dict) -> dict:
        return normalize_weekdays(v)


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[float] = Field(None, gt=0)
    meals_per_day: Optional[int] = Field(None, ge=1, le=4)
    servings_per_meal: Optional[int] = Field(None, ge=1, le=20)
    weekly_schedule: Optional[dict[str, dict[MealTimeSlot, int]]] = None
    cover_image: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None

    @field_validator("weekly_schedule")
    @classmethod
    def validate_days(cls, v: Optional[dict]) -> Optional[dict]:
        return normalize_weekdays(v) if v is not None else v


class PlanBrief(ORMModel):
    id: int
    name: str
    price: float


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

class SubscriptionCreate(BaseModel):
    plan_id: int
    start_date: date
    delivery_instructions: Optional[str] = Field(None, max_length=1000)
    use_chef_containers: bool = True


class SubscriptionResponse(ORMModel):
    id: int
    user_id: int
    plan_id: int
    kitchen_id: int
    status: SubscriptionStatus
    start_date: date
    end_date: Optional[date] = None
    delivery_instructions: Optional[str] = None
    use_chef_containers: bool
    monthly_price: float
    delivery_fee: float
    discount: float
    total_amount: float
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    plan: Optional[PlanBrief] = None
    user: Optional[UserBrief] = None


class SubscriptionRejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


# =============================================================================
# ORDERS
# =============================================================================

class CartItem(BaseModel):
    menu_item_id: int
    quantity: int = Field(..., ge=1, le=50)


class OrderCreate(BaseModel):
    """Checkout request; every item must come from the same kitchen."""
    items: list[CartItem] = Field(..., min_length=1)
    delivery_address_id: int
    delivery_date: date
    delivery_time_slot: MealTimeSlot
    notes: Optional[str] = Field(None, max_length=1000)


class KitchenBrief(ORMModel):
    id: int
    name: str


class OrderItemResponse(ORMModel):
    id: int
    menu_item_id: int
    quantity: int
    price: float
    menu_item: Optional[MenuItemBrief] = None


class OrderResponse(ORMModel):
    id: int
    user_id: int
    kitchen_id: int
    status: OrderStatus
    delivery_address_id: Optional[int] = None
    delivery_date: Optional[date] = None
    delivery_time_slot: Optional[MealTimeSlot] = None
    distance_km: Optional[float] = None
    notes: Optional[str] = None
    subtotal: float
    delivery_fee: float
    platform_fee: float
    total: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    kitchen: Optional[KitchenBrief] = None
    items: list[OrderItemResponse] = []


class OrderListResponse(BaseModel):
    total: int
    skip: int = 0
    take: int = 0
    orders: list[OrderResponse]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class DeliveryQuoteResponse(BaseModel):
    kitchen_id: int
    distance: Optional[float] = None
    formatted_distance: Optional[str] = None
    charge: Optional[int] = None
    available: bool
    error: Optional[str] = None


class SlotQuery(BaseModel):
    kitchen_id: int
    delivery_date: Optional[date] = None
    menu_item_ids: list[int] = []


class SlotResponse(BaseModel):
    slot: MealTimeSlot
    time: str
    display_name: str
    available: bool
    capacity: int
    reason: Optional[str] = None


class SlotsResponse(BaseModel):
    kitchen_id: int
    delivery_date: date
    slots: list[SlotResponse]


# =============================================================================
# REVIEWS
# =============================================================================

class ReviewCreate(BaseModel):
    menu_item_id: int
    order_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(ORMModel):
    id: int
    user_id: int
    menu_item_id: int
    order_id: int
    order_item_id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[UserBrief] = None


class ReviewListResponse(BaseModel):
    menu_item_id: int
    average_rating: float
    review_count: int
    reviews: list[ReviewResponse]


class ReviewEligibilityResponse(BaseModel):
    eligible: bool
    order_id: Optional[int] = None
    reason: Optional[str] = None


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class NotificationResponse(ORMModel):
    id: int
    user_id: Optional[int] = None
    kitchen_id: Optional[int] = None
    type: NotificationType
    title: str
    message: str
    action_url: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None


# =============================================================================
# SYSTEM
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    geo_service: str
    notification_service: str
    recommendation_service: str
    timestamp: datetime
