"""
SQLAlchemy Database Models

Tables:
- orders: customer orders with item snapshots, status and payment flag
- menu_items: the live menu managed by admins
- users / auth_sessions: admin authentication
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)

from orderdesk.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderType(str, enum.Enum):
    """Order type - table service or off-premise delivery."""
    DINE_IN = "dine-in"
    HOME_DELIVERY = "home-delivery"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


# =============================================================================
# FULFILLMENT VARIANTS
# =============================================================================

@dataclass(frozen=True)
class DineIn:
    """Table service: only the table and a contact number are known."""
    table_number: str
    whatsapp_number: str

    order_type = OrderType.DINE_IN


@dataclass(frozen=True)
class HomeDelivery:
    """Off-premise delivery: name, phone and address are all required."""
    customer_name: str
    customer_phone: str
    delivery_address: str
    whatsapp_number: str

    order_type = OrderType.HOME_DELIVERY


Fulfillment = Union[DineIn, HomeDelivery]


class Order(Base):
    """
    Main Order table.

    Items are stored as a JSON snapshot of name/price/qty taken at order
    time; they never follow later menu edits or deletions.
    """
    __tablename__ = "orders"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Public 4-digit identifier shared with the customer
    tracking_id = Column(String(8), nullable=False, unique=True, index=True)

    # =========================================================================
    # ORDER TYPE
    # =========================================================================
    order_type = Column(
        Enum(OrderType),
        default=OrderType.DINE_IN,
        nullable=False,
        index=True
    )

    # =========================================================================
    # CONTACT / FULFILLMENT
    # =========================================================================
    table_number = Column(String(20), nullable=True)
    whatsapp_number = Column(String(30), nullable=False)
    whatsapp_digits = Column(String(30), nullable=False, index=True)
    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    delivery_address = Column(Text, nullable=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)
    total = Column(Float, nullable=False)
    computed_total = Column(Float, nullable=False)
    total_mismatch = Column(Boolean, default=False, nullable=False)

    # =========================================================================
    # STATUS / PAYMENT
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    paid = Column(Boolean, default=False, nullable=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def fulfillment(self) -> Fulfillment:
        if self.order_type == OrderType.HOME_DELIVERY:
            return HomeDelivery(
                customer_name=self.customer_name,
                customer_phone=self.customer_phone,
                delivery_address=self.delivery_address,
                whatsapp_number=self.whatsapp_number,
            )
        return DineIn(table_number=self.table_number, whatsapp_number=self.whatsapp_number)

    def __repr__(self):
        return f"<Order #{self.tracking_id} - {self.order_type.value} - {self.status.value}>"


class MenuItem(Base):
    """Live menu entry; orders only keep a weak reference to it."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False)
    category = Column(String(50), nullable=False, default="", index=True)
    image_url = Column(String(500), nullable=True)
    available = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<MenuItem {self.id} - {self.name}>"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.email} - {self.role.value}>"


class AuthSession(Base):
    """Opaque bearer token issued at login."""
    __tablename__ = "auth_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    @property
    def is_expired(self) -> bool:
        expires_at: Optional[datetime] = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= utcnow()
