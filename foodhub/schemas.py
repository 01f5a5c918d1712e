"""
Pydantic Schemas for Request/Response Validation

Covers:
- Order placement (delivery info, payment descriptor, cart lines)
- Status and payment-status updates
- Order listings with filters and pagination metadata

Amounts are fixed-point ``Decimal`` values end to end.

Version: 1.0.0
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from foodhub.models import OrderStatus, PaymentMethod, PaymentStatus


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class DeliveryInfo(BaseModel):
    """Where the order goes, plus free-text notes for the restaurant."""
    delivery_address: str = Field(..., min_length=1, max_length=255, examples=["12 Avenue Kasa-Vubu"])
    notes: Optional[str] = Field(None, max_length=500, examples=["Ring twice"])

    @field_validator("delivery_address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Delivery address is required")
        return v


class PaymentInfo(BaseModel):
    """
    Payment descriptor supplied by the caller.

    Only mobile money produces a payment record; the service never talks to
    a payment gateway.
    """
    payment_method: Literal["mobile_money", "card", "cash"] = Field(..., examples=["mobile_money"])
    mobile_number: Optional[str] = Field(None, min_length=10, max_length=20, examples=["0812345678"])
    transaction_id: Optional[str] = Field(None, min_length=6, max_length=20, examples=["MP240617.1234"])
    provider_name: Optional[str] = Field(None, min_length=2, max_length=100, examples=["M-Pesa"])

    @model_validator(mode="after")
    def require_mobile_money_details(self) -> "PaymentInfo":
        if self.payment_method == "mobile_money":
            if not self.mobile_number:
                raise ValueError("mobile_number is required for mobile money payments")
            if not self.transaction_id:
                raise ValueError("transaction_id is required for mobile money payments")
        return self

    @property
    def is_mobile_money(self) -> bool:
        return self.payment_method == "mobile_money"


class CartItem(BaseModel):
    """One cart line: menu item reference with the price the customer saw."""
    id: str = Field(..., min_length=1, examples=["m1"])
    name: Optional[str] = Field(None, max_length=100, examples=["Chicken Moambe"])
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, examples=["5.00"])

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class OrderCreate(BaseModel):
    """Request schema for placing a new order."""
    restaurant_id: str = Field(..., min_length=1)
    delivery: DeliveryInfo
    payment: Optional[PaymentInfo] = None
    items: List[CartItem] = Field(..., min_length=1)
    total: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, examples=["13.50"])


class OrderStatusUpdate(BaseModel):
    """Request schema for moving an order to a new status."""
    status: OrderStatus
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class PaymentStatusUpdate(BaseModel):
    """Request schema for updating a payment record."""
    status: PaymentStatus
    notes: Optional[str] = Field(None, max_length=500)


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class OrderFilters(BaseModel):
    """Filter dimensions shared by every order listing."""
    order_number: Optional[str] = Field(None, max_length=20, description="Display-number search text")
    status: Union[OrderStatus, Literal["ALL"], None] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    restaurant_name: Optional[str] = Field(None, max_length=100, description="Admin listing only")

    @model_validator(mode="after")
    def check_date_range(self) -> "OrderFilters":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class ListParams(BaseModel):
    """Pagination and sorting of an order listing."""
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1)
    sort_field: str = Field(default="created_at")
    sort_order: SortOrder = SortOrder.DESC


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    menu_item_id: str
    name: Optional[str] = None
    quantity: int
    price: Decimal


class PaymentTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: str
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str]
    mobile_number: Optional[str]
    provider_name: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime


class OrderResponse(BaseModel):
    """Full order snapshot: status, items and payment."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_order_number: str
    status: OrderStatus
    total_amount: Decimal
    delivery_address: str
    customer_notes: Optional[str]
    cancellation_reason: Optional[str]
    customer_id: str
    restaurant_id: str
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse]
    payment_transaction: Optional[PaymentTransactionResponse]

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        data = cls.model_validate(order)
        # Line names come from the referenced menu item
        for line, item in zip(data.items, order.items):
            line.name = item.menu_item.name if item.menu_item else None
        return data


class OrderSummary(BaseModel):
    """One row of an order listing."""
    id: str
    display_order_number: str
    status: OrderStatus
    total_amount: Decimal
    delivery_address: str
    restaurant_id: str
    restaurant_name: str
    customer_name: Optional[str]
    item_count: int
    payment_status: Optional[PaymentStatus]
    created_at: datetime


class Pagination(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int


class OrderListResponse(BaseModel):
    orders: List[OrderSummary]
    pagination: Pagination


class OrderCreateResponse(BaseModel):
    """Response after successfully placing an order."""
    success: bool = True
    message: str = "Order placed successfully"
    order_id: str
    display_order_number: str
    created_at: datetime


class OrderStatusResponse(BaseModel):
    success: bool = True
    order: OrderResponse


class PaymentTransactionListResponse(BaseModel):
    transactions: List[PaymentTransactionResponse]
    next_cursor: Optional[str] = None


class PaymentStatusResponse(BaseModel):
    success: bool = True
    message: str
    transaction: PaymentTransactionResponse


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    notification_service: str
    timestamp: datetime
