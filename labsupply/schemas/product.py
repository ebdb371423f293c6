# labsupply/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

from labsupply.utils.row_validator import INTEGER_MAX


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Product joined with its stock levels, as listed in the admin console
class InventoryItem(ORMBase):
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    category: str = "Uncategorized"
    wholesale_price_cents: int
    is_active: bool
    requires_coa: bool = False
    weight_grams: Optional[int] = None
    min_order_qty: int = 1
    max_order_qty: Optional[int] = None
    tags: Optional[List[str]] = None
    on_hand: int = 0
    reserved: int = 0
    incoming: int = 0
    low_stock_threshold: int = 10
    # on_hand - reserved, negative when oversold
    available_qty: int = 0
    created_at: Optional[datetime] = None


# Paginated response for inventory listings
class InventoryPage(ORMBase):
    items: List[InventoryItem]
    total: int
    page: int
    page_size: int


# Schema for creating a single product by hand
class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    category: Optional[str] = None
    wholesale_price_cents: int = Field(ge=0, le=INTEGER_MAX)
    on_hand: Optional[int] = Field(default=None, ge=0, le=INTEGER_MAX)
    reorder_point: Optional[int] = Field(default=None, ge=0, le=INTEGER_MAX)


class ProductCreated(BaseModel):
    id: int
    sku: str


class ProductCreatedResponse(BaseModel):
    data: ProductCreated


# Schema for PATCH requests - everything but product_id optional
class InventoryUpdate(BaseModel):
    product_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    cost_cents: Optional[int] = Field(None, ge=0, le=INTEGER_MAX)
    active: Optional[bool] = None
    on_hand: Optional[int] = Field(None, ge=0, le=INTEGER_MAX)
    reorder_point: Optional[int] = Field(None, ge=0, le=INTEGER_MAX)
    reason: Optional[str] = None
