# labsupply/models/merchant.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, func
from sqlalchemy.orm import relationship
from labsupply.database import Base

MERCHANT_STATUSES = ("pending", "approved", "suspended")
KYB_STATUSES = ("not_started", "in_progress", "approved", "rejected")

# Model Merchant
# A reseller store onboarded onto the portal. Carries login credentials,
# business identity collected during KYB and the flags the admin console
# flips when the review is decided.
class Merchant(Base):
    __tablename__ = "merchants"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)

    company_name = Column(String, nullable=True, index=True)
    contact_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    website_url = Column(String, nullable=True)

    # Business identity submitted for KYB
    legal_business_name = Column(String, nullable=True)
    ein = Column(String(20), nullable=True)
    business_address = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    kyb_status = Column(String(20), nullable=False, default="not_started", index=True)
    kyb_submitted_at = Column(DateTime(timezone=True), nullable=True)
    kyb_reviewed_at = Column(DateTime(timezone=True), nullable=True)
    kyb_rejection_reason = Column(String, nullable=True)
    can_ship = Column(Boolean, nullable=False, default=False)

    mercury_customer_id = Column(String, nullable=True)
    price_adjustment_percent = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    wallets = relationship("WalletAccount", back_populates="merchant", cascade="all, delete-orphan")
