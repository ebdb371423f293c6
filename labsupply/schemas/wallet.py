# labsupply/schemas/wallet.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import List, Optional


class WalletResponse(BaseModel):
    currency: str = "USD"
    balance_cents: int
    reserved_cents: int
    # balance - reserved
    available_cents: int
    compliance_reserve_cents: int
    # available - compliance reserve, never below zero
    spendable_cents: int


class WalletTransactionResponse(BaseModel):
    id: int
    type: str
    amount_cents: int
    balance_after_cents: int
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionPage(BaseModel):
    items: List[WalletTransactionResponse]
    total: int
    page: int
    page_size: int


class FundingCheckRequest(BaseModel):
    amount_cents: int = Field(gt=0)


class FundingCheckResponse(BaseModel):
    can_fund: bool
    amount_cents: int
    wallet_balance_cents: int
    reserved_cents: int
    compliance_reserve_cents: int
    available_after_reserve_cents: int
    required_balance_cents: int
    message: Optional[str] = None


# Manual credit (positive) or debit (negative) made from the admin console
class WalletAdjustRequest(BaseModel):
    amount_cents: int
    description: str = Field(min_length=1)
    idempotency_key: Optional[str] = Field(None, max_length=128)

    @field_validator("amount_cents")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("amount_cents must not be zero")
        return v


class WalletAdjustResponse(BaseModel):
    new_balance_cents: int
    transaction_id: int
