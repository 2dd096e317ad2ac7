"""
Pydantic Schemas for Request/Response Validation

Covers the catalog, orders, accounts and reports. Money travels as
``Decimal`` end to end and is only rounded to two places when rendered
as JSON.

Version: 1.0.0
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer, field_validator

from pizzeria.models import (
    Account,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PreferredView,
    ProductCategory,
    Role,
    SalesChannel,
)

CENT = Decimal("0.01")


def money_to_float(value: Decimal) -> float:
    return float(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


Money = Annotated[
    Decimal,
    PlainSerializer(money_to_float, return_type=float, when_used="json"),
]

T = TypeVar("T")


# =============================================================================
# CATALOG SCHEMAS
# =============================================================================

class PriceOption(BaseModel):
    """A priced choice on a product: a size, a crust or an addon."""
    name: str = Field(..., min_length=1, max_length=80, examples=["grande"])
    price: Money = Field(..., ge=0, examples=[45.90])
    available: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class ProductCreate(BaseModel):
    """Request schema for creating a product."""
    name: str = Field(..., min_length=1, max_length=120, examples=["Pizza Margherita"])
    category: ProductCategory = Field(..., examples=["pizza"])
    description: Optional[str] = Field(None, max_length=1000)
    ingredients: List[str] = Field(default_factory=list)
    sizes: List[PriceOption] = Field(..., min_length=1)
    crusts: List[PriceOption] = Field(default_factory=list)
    addons: List[PriceOption] = Field(default_factory=list)
    preparation_minutes: int = Field(default=30, ge=0, le=600)
    vegetarian: bool = False
    image_url: Optional[str] = Field(None, max_length=500)
    display_order: int = 0


class ProductUpdate(BaseModel):
    """Partial product update; only fields that are sent are changed."""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    ingredients: Optional[List[str]] = None
    sizes: Optional[List[PriceOption]] = Field(None, min_length=1)
    crusts: Optional[List[PriceOption]] = None
    addons: Optional[List[PriceOption]] = None
    preparation_minutes: Optional[int] = Field(None, ge=0, le=600)
    available: Optional[bool] = None
    vegetarian: Optional[bool] = None
    image_url: Optional[str] = Field(None, max_length=500)
    display_order: Optional[int] = None


class AvailabilityUpdate(BaseModel):
    available: bool


class ProductResponse(BaseModel):
    """Response schema for a single product."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: ProductCategory
    description: Optional[str]
    ingredients: List[str]
    sizes: List[PriceOption]
    crusts: List[PriceOption]
    addons: List[PriceOption]
    preparation_minutes: int
    available: bool
    vegetarian: bool
    image_url: Optional[str]
    display_order: int
    created_at: datetime
    updated_at: Optional[datetime]


class ProductEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    product: ProductResponse


class ProductListEnvelope(BaseModel):
    success: bool = True
    products: List[ProductResponse]


class CategoryListEnvelope(BaseModel):
    success: bool = True
    categories: List[ProductCategory]


# =============================================================================
# ORDER REQUEST SCHEMAS
# =============================================================================

class Address(BaseModel):
    street: Optional[str] = Field(None, max_length=200)
    number: Optional[str] = Field(None, max_length=20)
    district: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    complement: Optional[str] = Field(None, max_length=200)


class CustomerInfo(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["João Silva"])
    phone: Optional[str] = Field(None, max_length=30, examples=["(11) 99999-1111"])
    address: Optional[Address] = None

    @field_validator("name")
    @classmethod
    def require_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Customer name is required")
        return v


class ModifierSelection(BaseModel):
    """Crust or addon picked by the customer. Any client price is ignored."""
    name: str = Field(..., min_length=1, max_length=80)


class OrderItemCreate(BaseModel):
    """Single requested line item."""
    product_id: int = Field(..., ge=1)
    quantity: int = Field(default=1, ge=1, le=99)
    size: str = Field(..., min_length=1, max_length=50, examples=["grande"])
    flavors: List[str] = Field(default_factory=list)
    crust: Optional[ModifierSelection] = None
    addons: List[ModifierSelection] = Field(default_factory=list)
    note: Optional[str] = Field(None, max_length=500)


class PaymentCreate(BaseModel):
    method: PaymentMethod = Field(..., examples=["cash"])
    change_due: Optional[Money] = Field(None, ge=0)
    paid: bool = False


class OrderCreate(BaseModel):
    """Request schema for creating a new order."""
    customer: CustomerInfo
    order_type: OrderType = Field(default=OrderType.DELIVERY, examples=["delivery"])
    channel: SalesChannel = Field(default=SalesChannel.COUNTER, examples=["phone"])
    items: List[OrderItemCreate] = Field(..., min_length=1)
    payment: PaymentCreate
    notes: Optional[str] = Field(None, max_length=1000)


class OrderUpdate(BaseModel):
    """Fields that may change while an order is still awaiting preparation."""
    customer: Optional[CustomerInfo] = None
    notes: Optional[str] = Field(None, max_length=1000)


class StatusUpdate(BaseModel):
    status: OrderStatus


# =============================================================================
# ORDER RESPONSE SCHEMAS
# =============================================================================

class PricedSelection(BaseModel):
    name: str
    price: Money


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    size: str
    flavors: List[str]
    crust: Optional[PricedSelection]
    addons: List[PricedSelection]
    note: Optional[str]
    price: Money

    @classmethod
    def from_model(cls, item: OrderItem) -> "OrderItemResponse":
        crust = None
        if item.crust_name:
            crust = PricedSelection(name=item.crust_name, price=item.crust_price or Decimal("0"))
        return cls(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            size=item.size,
            flavors=list(item.flavors or []),
            crust=crust,
            addons=[PricedSelection(**a) for a in (item.addons or [])],
            note=item.note,
            price=item.price,
        )


class PaymentSummary(BaseModel):
    method: PaymentMethod
    total: Money
    change_due: Optional[Money]
    paid: bool


class OrderTimestamps(BaseModel):
    created_at: datetime
    preparation_started_at: Optional[datetime]
    preparation_finished_at: Optional[datetime]
    dispatched_at: Optional[datetime]
    delivered_at: Optional[datetime]


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: int
    number: str
    customer: CustomerInfo
    order_type: OrderType
    channel: SalesChannel
    status: OrderStatus
    items: List[OrderItemResponse]
    payment: PaymentSummary
    timestamps: OrderTimestamps
    notes: Optional[str]
    active: bool
    updated_at: Optional[datetime]

    @classmethod
    def from_model(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            number=order.number,
            customer=CustomerInfo(
                name=order.customer_name,
                phone=order.customer_phone,
                address=Address(**order.customer_address) if order.customer_address else None,
            ),
            order_type=order.order_type,
            channel=order.channel,
            status=order.status,
            items=[OrderItemResponse.from_model(i) for i in order.items],
            payment=PaymentSummary(
                method=order.payment_method,
                total=order.total_amount,
                change_due=order.change_due,
                paid=order.paid,
            ),
            timestamps=OrderTimestamps(
                created_at=order.created_at,
                preparation_started_at=order.preparation_started_at,
                preparation_finished_at=order.preparation_finished_at,
                dispatched_at=order.dispatched_at,
                delivered_at=order.delivered_at,
            ),
            notes=order.notes,
            active=order.active,
            updated_at=order.updated_at,
        )


class KitchenOrderResponse(OrderResponse):
    """Order as shown on a kitchen display, with time spent in its current phase."""
    elapsed_minutes: int


class OrderEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    order: OrderResponse


class OrderListEnvelope(BaseModel):
    success: bool = True
    total: int
    orders: List[OrderResponse]


class KitchenEnvelope(BaseModel):
    success: bool = True
    orders: List[KitchenOrderResponse]


# =============================================================================
# ACCOUNT SCHEMAS
# =============================================================================

class AccountCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Maria Santos"])
    email: EmailStr = Field(..., examples=["maria@pizzeria.com"])
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = Field(..., examples=["counter_staff"])


class AccountUpdate(BaseModel):
    """Administrative account changes."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[Role] = None
    active: Optional[bool] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class Preferences(BaseModel):
    sound_notifications: bool = True
    preferred_view: Optional[PreferredView] = None


class PreferencesUpdate(BaseModel):
    sound_notifications: Optional[bool] = None
    preferred_view: Optional[PreferredView] = None


class AccountResponse(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    active: bool
    last_login_at: Optional[datetime]
    preferences: Preferences
    created_at: datetime

    @classmethod
    def from_model(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            role=account.role,
            active=account.active,
            last_login_at=account.last_login_at,
            preferences=Preferences(
                sound_notifications=account.sound_notifications,
                preferred_view=account.preferred_view,
            ),
            created_at=account.created_at,
        )


class AccountEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    account: AccountResponse


class AccountListEnvelope(BaseModel):
    success: bool = True
    accounts: List[AccountResponse]


class TokenResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    account: AccountResponse


# =============================================================================
# REPORT SCHEMAS
# =============================================================================

class DashboardReport(BaseModel):
    orders_today: int
    open_orders: int
    revenue_today: Money
    average_preparation_minutes: int


class SalesBucket(BaseModel):
    period: str
    total_revenue: Money
    order_count: int
    average_ticket: Money


class SalesTotals(BaseModel):
    total_revenue: Money
    order_count: int
    average_ticket: Money


class SalesReport(BaseModel):
    grouping: str
    buckets: List[SalesBucket]
    totals: SalesTotals


class ProductSales(BaseModel):
    product_id: int
    product_name: str
    category: Optional[ProductCategory]
    quantity_sold: int
    revenue: Money
    average_price: Money


class DurationStats(BaseModel):
    orders_analyzed: int = 0
    mean: int = 0
    min: Optional[int] = None
    max: Optional[int] = None


class TimesReport(BaseModel):
    preparation: DurationStats
    delivery: DurationStats
    total: DurationStats


class ChannelSales(BaseModel):
    channel: SalesChannel
    order_count: int
    revenue: Money
    average_ticket: Money
    revenue_share: float
    order_share: float


class ChannelTotals(BaseModel):
    revenue: Money
    order_count: int


class ChannelReport(BaseModel):
    channels: List[ChannelSales]
    totals: ChannelTotals


class DataEnvelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    broadcaster: str
    timestamp: datetime
