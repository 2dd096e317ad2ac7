"""
SQLAlchemy Database Models

Pizzeria order management:
- Catalog (products with size, crust and addon price lists)
- Orders and their line items, with lifecycle timestamps
- Staff accounts with roles and display preferences

Version: 1.0.0
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from pizzeria.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductCategory(str, enum.Enum):
    """Catalog sections."""
    PIZZA = "pizza"
    DRINK = "drink"
    DESSERT = "dessert"
    ADDON = "addon"


class OrderStatus(str, enum.Enum):
    """Order status workflow, in lifecycle order."""
    AWAITING_PREPARATION = "awaiting_preparation"
    IN_PREPARATION = "in_preparation"
    READY = "ready"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderType(str, enum.Enum):
    """How the order reaches the customer."""
    DELIVERY = "delivery"
    PICKUP = "pickup"
    DINE_IN = "dine_in"


class SalesChannel(str, enum.Enum):
    """Where the order was taken."""
    COUNTER = "counter"
    PHONE = "phone"
    MARKETPLACE = "marketplace"
    WEB = "web"
    MESSAGING = "messaging"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    DEBIT_CARD = "debit_card"
    CREDIT_CARD = "credit_card"
    PIX = "pix"


class Role(str, enum.Enum):
    """Staff roles. Capabilities per role live in pizzeria.core.permissions."""
    ADMIN = "admin"
    MANAGER = "manager"
    COUNTER_STAFF = "counter_staff"
    COOK = "cook"
    DRIVER = "driver"


class PreferredView(str, enum.Enum):
    """Kitchen display sector an account prefers to watch."""
    ALL = "all"
    PREPARATION = "preparation"
    EXPEDITION = "expedition"
    DELIVERY = "delivery"


class Product(Base):
    """
    Catalog entry.

    ``sizes``, ``crusts`` and ``addons`` are JSON lists of
    ``{"name": str, "price": str, "available": bool}`` entries. Prices are
    stored as decimal strings so they round-trip exactly.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(120), nullable=False, index=True)
    category = Column(Enum(ProductCategory), nullable=False, index=True)
    description = Column(Text, nullable=True)
    ingredients = Column(JSON, nullable=False, default=list)

    # =========================================================================
    # PRICE LISTS
    # =========================================================================
    sizes = Column(JSON, nullable=False, default=list)
    crusts = Column(JSON, nullable=False, default=list)
    addons = Column(JSON, nullable=False, default=list)

    preparation_minutes = Column(Integer, nullable=False, default=30)
    available = Column(Boolean, nullable=False, default=True, index=True)
    vegetarian = Column(Boolean, nullable=False, default=False)
    image_url = Column(String(500), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self):
        return f"<Product #{self.id} - {self.category.value} - {self.name}>"


class Order(Base):
    """
    Customer order.

    Tracks the lifecycle from creation to delivery. ``sequence`` is the
    integer behind the human-readable ``number`` and carries the unique
    constraint used to detect concurrent allocations.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    sequence = Column(Integer, nullable=False, unique=True)
    number = Column(String(12), nullable=False, unique=True, index=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30), nullable=True)
    customer_address = Column(JSON, nullable=True)

    order_type = Column(Enum(OrderType), nullable=False, default=OrderType.DELIVERY, index=True)
    channel = Column(Enum(SalesChannel), nullable=False, default=SalesChannel.COUNTER, index=True)

    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.AWAITING_PREPARATION,
        nullable=False,
        index=True
    )

    # =========================================================================
    # PAYMENT
    # =========================================================================
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    change_due = Column(Numeric(10, 2), nullable=True)
    paid = Column(Boolean, nullable=False, default=False)

    # =========================================================================
    # LIFECYCLE TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    preparation_started_at = Column(DateTime(timezone=True), nullable=True)
    preparation_finished_at = Column(DateTime(timezone=True), nullable=True)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    notes = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True, index=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order #{self.number} - {self.order_type.value} - {self.customer_name} - {self.status.value}>"


class OrderItem(Base):
    """One product selection within an order, with its resolved price."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    # Snapshot so the order reads the same after catalog edits
    product_name = Column(String(120), nullable=False)

    quantity = Column(Integer, nullable=False, default=1)
    size = Column(String(50), nullable=False)
    flavors = Column(JSON, nullable=False, default=list)
    crust_name = Column(String(80), nullable=True)
    crust_price = Column(Numeric(10, 2), nullable=True)
    addons = Column(JSON, nullable=False, default=list)
    note = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity}x {self.product_name} ({self.size})>"


class Account(Base):
    """Staff account."""
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(Role), nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    # =========================================================================
    # DISPLAY PREFERENCES
    # =========================================================================
    sound_notifications = Column(Boolean, nullable=False, default=True)
    preferred_view = Column(Enum(PreferredView), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self):
        return f"<Account {self.email} - {self.role.value}>"
