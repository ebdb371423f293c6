# labsupply/models/order.py
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, JSON, Text, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from labsupply.database import Base

# Model Order
# A merchant's store order forwarded to the supplier. Funds for the whole
# estimate are held in the merchant wallet from FUNDED until the order ships
# (charged) or is cancelled (released).
class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (UniqueConstraint("merchant_id", "external_order_id", name="uq_order_merchant_external"),)

    id = Column(Integer, primary_key=True, index=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False, index=True)
    # Order id in the merchant's storefront
    external_order_id = Column(String(64), nullable=False)
    status = Column(String(40), nullable=False, default="RECEIVED", index=True)
    currency = Column(String(3), nullable=False, default="USD")

    subtotal_cents = Column(Integer, nullable=False, default=0)
    shipping_estimate_cents = Column(Integer, nullable=False, default=0)
    total_estimate_cents = Column(Integer, nullable=False, default=0)
    # Amount currently held in the wallet's reserved bucket for this order
    reserved_cents = Column(Integer, nullable=False, default=0)
    charged_cents = Column(Integer, nullable=False, default=0)

    shipping_address = Column(JSON, nullable=True)
    customer_email = Column(String, nullable=True)
    customer_note = Column(Text, nullable=True)
    supplier_notes = Column(Text, nullable=True)
    meta = Column(JSON, nullable=True)

    released_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    sku = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    qty = Column(Integer, nullable=False)
    unit_price_cents = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
