"""
SQLAlchemy Database Models

Order core tables:
- orders, order_items, payment_transactions (owned by the order workflow)
- users, customers, restaurants, restaurant_managers, menu_items
  (referenced; their CRUD lives outside this service)

Version: 1.0.0
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    DateTime,
    Text,
    Enum,
    Boolean,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from foodhub.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    """Platform roles."""
    ADMIN = "ADMIN"
    RESTAURANT = "RESTAURANT"
    CUSTOMER = "CUSTOMER"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PLACED = "PLACED"
    PREPARING = "PREPARING"
    DISPATCHED = "DISPATCHED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class PaymentMethod(str, enum.Enum):
    """Payment instruments a payment record can describe."""
    MOBILE_MONEY = "MOBILE_MONEY"
    CARD = "CARD"
    CASH = "CASH"


class PaymentStatus(str, enum.Enum):
    """Payment record status, managed independently of the order status."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


# =============================================================================
# REFERENCED ENTITIES
# =============================================================================

class User(Base):
    """Platform account; sessions for it are issued by the auth service."""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True, unique=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customer = relationship(
        "Customer", back_populates="user", uselist=False, lazy="selectin"
    )
    restaurant_manager = relationship(
        "RestaurantManager", back_populates="user", uselist=False, lazy="selectin"
    )

    def __repr__(self):
        return f"<User {self.id} - {self.role.value}>"


class Customer(Base):
    """Customer profile attached to a CUSTOMER user."""
    __tablename__ = "customers"

    id = Column(String(32), primary_key=True, default=_new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, unique=True)
    phone_number = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)

    user = relationship("User", back_populates="customer", lazy="selectin")


class Restaurant(Base):
    """Fulfilling restaurant; the order core reads contact info and fees."""
    __tablename__ = "restaurants"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone_number = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    preparation_time = Column(String(50), nullable=True)

    def __repr__(self):
        return f"<Restaurant {self.id} - {self.name}>"


class RestaurantManager(Base):
    """Links a RESTAURANT user to the one restaurant they manage."""
    __tablename__ = "restaurant_managers"

    id = Column(String(32), primary_key=True, default=_new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, unique=True)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), nullable=False, index=True)

    user = relationship("User", back_populates="restaurant_manager")


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(32), primary_key=True, default=_new_id)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)


# =============================================================================
# ORDER WORKFLOW
# =============================================================================

class Order(Base):
    """
    Main Order table.

    The display order number is the customer-facing identifier; it is unique
    for the lifetime of the system and never changes once assigned.
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("display_order_number", name="uq_orders_display_order_number"),
    )

    id = Column(String(32), primary_key=True, default=_new_id)

    # =========================================================================
    # IDENTIFICATION
    # =========================================================================
    display_order_number = Column(String(20), nullable=False, index=True)
    order_number = Column(Integer, nullable=True)

    # =========================================================================
    # PARTIES
    # =========================================================================
    customer_id = Column(String(32), ForeignKey("customers.id"), nullable=False, index=True)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), nullable=False, index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PLACED,
        nullable=False,
        index=True
    )
    total_amount = Column(Numeric(10, 2), nullable=False)
    delivery_address = Column(String(255), nullable=False)
    customer_notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        lazy="selectin",
    )
    payment_transaction = relationship(
        "PaymentTransaction", back_populates="order", uselist=False, lazy="selectin"
    )
    restaurant = relationship("Restaurant", lazy="selectin")
    customer = relationship("Customer", lazy="selectin")

    def __repr__(self):
        return f"<Order {self.display_order_number} - {self.status.value}>"


class OrderItem(Base):
    """A priced line; ``price`` is the unit price captured at order time."""
    __tablename__ = "order_items"

    id = Column(String(32), primary_key=True, default=_new_id)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(String(32), ForeignKey("menu_items.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", lazy="selectin")


class PaymentTransaction(Base):
    """
    Record of a non-card payment instrument (e.g. mobile money).

    No money moves through this service; restaurants confirm the payment
    out of band and update the status.
    """
    __tablename__ = "payment_transactions"

    id = Column(String(32), primary_key=True, default=_new_id)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, unique=True)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True)
    transaction_id = Column(String(100), nullable=True)
    mobile_number = Column(String(20), nullable=True)
    provider_name = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    customer_id = Column(String(32), ForeignKey("customers.id"), nullable=False, index=True)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    order = relationship("Order", back_populates="payment_transaction")

    def __repr__(self):
        return f"<PaymentTransaction {self.id} - {self.status.value}>"
