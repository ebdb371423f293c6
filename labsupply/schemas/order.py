# labsupply/schemas/order.py
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

OrderStatus = Literal[
    "RECEIVED", "AWAITING_FUNDS", "FUNDED", "RELEASED_TO_FULFILLMENT", "PICKING", "PACKED",
    "SHIPPED", "COMPLETE", "ON_HOLD_PAYMENT", "ON_HOLD_COMPLIANCE", "CANCELLED", "REFUNDED",
]


# A line of a merchant's storefront order, resolved by supplier SKU
class OrderItemIn(BaseModel):
    sku: str = Field(min_length=1, max_length=50)
    qty: int = Field(ge=1, le=10000)
    name: Optional[str] = Field(None, max_length=255)


class OrderCreate(BaseModel):
    external_order_id: str = Field(min_length=1, max_length=64)
    items: List[OrderItemIn] = Field(min_length=1, max_length=100)
    shipping_address: Dict[str, Any]
    customer_email: Optional[EmailStr] = None
    customer_note: Optional[str] = Field(None, max_length=2000)


class OrderItemOut(BaseModel):
    product_id: int
    sku: str
    name: str
    qty: int
    unit_price_cents: int
    line_total_cents: int


class OrderResponse(BaseModel):
    id: int
    merchant_id: int
    external_order_id: str
    status: str
    currency: str
    subtotal_cents: int
    shipping_estimate_cents: int
    total_estimate_cents: int
    reserved_cents: int
    charged_cents: int
    shipping_address: Optional[Dict[str, Any]] = None
    customer_email: Optional[str] = None
    customer_note: Optional[str] = None
    supplier_notes: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    released_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)


class OrdersPage(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int


# Returned by order creation, including the idempotent replay of an earlier request
class OrderCreatedResponse(BaseModel):
    supplier_order_id: int
    status: str
    is_duplicate: bool = False
    is_funded: bool
    estimated_total_cents: int
    wallet_balance_cents: int
    available_after_reserve_cents: Optional[int] = None
    compliance_reserve_cents: Optional[int] = None
    compliance_message: Optional[str] = None


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class OrderCancelResponse(BaseModel):
    success: bool
    status: str


# Admin status change; side effects follow the transition table
class OrderStatusPatch(BaseModel):
    status: OrderStatus
    notes: Optional[str] = Field(None, max_length=1000)
