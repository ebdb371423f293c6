# labsupply/schemas/merchant.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

MerchantStatus = Literal["pending", "approved", "suspended"]
KybStatus = Literal["not_started", "in_progress", "approved", "rejected"]


# Schema for merchant self-registration
class MerchantRegister(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    company_name: str = Field(min_length=1)
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    website_url: Optional[str] = None


# Business identity submitted for KYB review
class KybSubmission(BaseModel):
    legal_business_name: str = Field(min_length=1)
    ein: str = Field(min_length=9, max_length=20)
    business_address: str = Field(min_length=1)


class MerchantResponse(BaseModel):
    id: int
    email: str
    company_name: Optional[str] = None
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    website_url: Optional[str] = None
    legal_business_name: Optional[str] = None
    status: str
    kyb_status: str
    kyb_submitted_at: Optional[datetime] = None
    kyb_reviewed_at: Optional[datetime] = None
    kyb_rejection_reason: Optional[str] = None
    can_ship: bool
    mercury_customer_id: Optional[str] = None
    price_adjustment_percent: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MerchantPage(BaseModel):
    items: List[MerchantResponse]
    total: int
    page: int
    page_size: int


# Fields an admin may change on a merchant; anything else is ignored
class MerchantUpdate(BaseModel):
    status: Optional[MerchantStatus] = None
    can_ship: Optional[bool] = None
    kyb_status: Optional[KybStatus] = None
    company_name: Optional[str] = None
    phone: Optional[str] = None
    website_url: Optional[str] = None
    price_adjustment_percent: Optional[int] = Field(None, ge=-100, le=100)


class KybStats(BaseModel):
    approved_count: int


class KybQueue(BaseModel):
    data: List[MerchantResponse]
    stats: KybStats


class KybDecision(BaseModel):
    merchant_id: int
    action: Literal["approve", "reject"]
    reason: Optional[str] = None


class KybDecisionResponse(BaseModel):
    success: bool = True
    action: Literal["approved", "rejected"]
    mercury_customer_id: Optional[str] = None
