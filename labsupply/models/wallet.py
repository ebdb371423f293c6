# labsupply/models/wallet.py
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, JSON, CheckConstraint, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from labsupply.database import Base

# Prepaid balance a merchant funds upfront; orders draw from it
class WalletAccount(Base):
    __tablename__ = "wallet_accounts"
    __table_args__ = (UniqueConstraint("merchant_id", "currency", name="uq_wallet_merchant_currency"),)

    id = Column(Integer, primary_key=True, index=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False, index=True)
    currency = Column(String(3), nullable=False, default="USD")

    balance_cents = Column(Integer, CheckConstraint("balance_cents >= 0"), nullable=False, default=0)
    # Funds earmarked for orders in flight
    reserved_cents = Column(Integer, CheckConstraint("reserved_cents >= 0"), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    merchant = relationship("Merchant", back_populates="wallets")


# Ledger entry written for every balance change
class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"

    id = Column(Integer, primary_key=True, index=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False, index=True)
    wallet_id = Column(Integer, ForeignKey("wallet_accounts.id"), nullable=False, index=True)

    # Classification (e.g. ADJUSTMENT, TOPUP, ORDER_CHARGE, REFUND)
    type = Column(String(40), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    balance_after_cents = Column(Integer, nullable=False)

    reference_type = Column(String(40), nullable=True)
    reference_id = Column(String(64), nullable=True)
    description = Column(String, nullable=True)
    idempotency_key = Column(String(128), unique=True, nullable=True)
    meta = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
