"""
Pydantic Schemas for Request/Response Validation

The public JSON shape is camelCase (trackingId, orderType, ...); Python
code uses snake_case attribute names throughout.
"""

import re
from datetime import datetime
from typing import Any, Optional, List

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
)
from pydantic.alias_generators import to_camel

from orderdesk.models import OrderStatus, OrderType, UserRole


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _coerce_text(v: Any) -> Any:
    # Table numbers and phone numbers arrive as JSON numbers from some clients
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    if isinstance(v, str):
        return v.strip()
    return v


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderItemSnapshot(CamelModel):
    """Menu item copy captured at order time."""
    menu_item: Optional[int] = Field(None, examples=[12])
    name: str = Field(..., min_length=1, max_length=100, examples=["Coffee"])
    price: float = Field(..., ge=0, examples=[100])
    qty: int = Field(
        ...,
        ge=1,
        validation_alias=AliasChoices("qty", "quantity"),
        examples=[2],
    )

    @property
    def line_total(self) -> float:
        return round(self.price * self.qty, 2)


class OrderCreate(CamelModel):
    """
    Request schema for placing an order.

    Fields are loosely typed here; the per-order-type required fields are
    checked by the lifecycle service so the caller gets one clear message.
    """
    order_type: Optional[OrderType] = Field(None, examples=["dine-in"])
    table_number: Optional[str] = Field(None, max_length=20, examples=["T5"])
    whatsapp_number: Optional[str] = Field(None, max_length=30, examples=["9998887776"])
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    delivery_address: Optional[str] = Field(None, max_length=500)
    items: List[OrderItemSnapshot] = Field(default_factory=list)
    total: Optional[float] = Field(None, ge=0, examples=[200])

    @field_validator(
        "table_number",
        "whatsapp_number",
        "customer_name",
        "customer_phone",
        "delivery_address",
        mode="before",
    )
    @classmethod
    def normalize_text(cls, v: Any) -> Any:
        return _coerce_text(v)


class OrderStatusUpdate(CamelModel):
    """Partial update; status is validated against the workflow by the service."""
    status: Optional[str] = Field(None, examples=["served"])
    paid: Optional[StrictBool] = Field(None, examples=[True])


class OrderResponse(CamelModel):
    """Response schema for a single order."""
    id: int
    tracking_id: str
    order_type: OrderType
    table_number: Optional[str]
    whatsapp_number: str
    customer_name: Optional[str]
    customer_phone: Optional[str]
    delivery_address: Optional[str]
    items: List[OrderItemSnapshot]
    total: float
    computed_total: float
    total_mismatch: bool
    status: OrderStatus
    paid: bool
    created_at: datetime
    updated_at: datetime


class OrderEnvelope(BaseModel):
    """Response after placing or updating an order."""
    msg: str
    order: OrderResponse


class OrderStats(CamelModel):
    """Aggregates for the admin dashboard."""
    total_orders: int
    by_status: dict[str, int]
    paid_orders: int
    unpaid_orders: int
    today_income: float
    total_income: float
    flagged_totals: int


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class MenuItemCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Masala Dosa"])
    description: str = Field(default="", max_length=1000)
    price: float = Field(..., ge=0, examples=[120])
    category: str = Field(default="", max_length=50, examples=["South Indian"])
    image_url: Optional[str] = Field(None, max_length=500)
    available: bool = True

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = Field(None, max_length=500)
    available: Optional[bool] = None


class MenuItemResponse(CamelModel):
    id: int
    name: str
    description: str
    price: float
    category: str
    image_url: Optional[str]
    available: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# AUTH SCHEMAS
# =============================================================================

EMAIL_PATTERN = re.compile(r'^[\w\.+-]+@[\w\.-]+\.\w+$')


class RegisterRequest(CamelModel):
    name: Optional[str] = Field(None, max_length=100)
    email: str = Field(..., max_length=255, examples=["admin@example.com"])
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = UserRole.CUSTOMER

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserResponse(CamelModel):
    id: int
    name: Optional[str]
    email: str
    role: UserRole


class TokenResponse(BaseModel):
    token: str
    user: UserResponse


# =============================================================================
# SYSTEM SCHEMAS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    msg: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    notification_service: str
    timestamp: datetime
