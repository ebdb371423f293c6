# labsupply/models/product.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, CheckConstraint, func
from sqlalchemy.orm import relationship
from labsupply.database import Base

# Model Product
# A catalog entry sold to merchants. The SKU is stored upper-cased and is the
# key every import and manual edit resolves products by. Prices are kept in
# integer cents.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)

    description = Column(String, nullable=True)
    category = Column(String, nullable=True, index=True)

    cost_cents = Column(Integer, CheckConstraint("cost_cents >= 0"), nullable=False)

    active = Column(Boolean, nullable=False, default=True)
    # Certificate of analysis has to ship with the product
    requires_coa = Column(Boolean, nullable=False, default=False)

    weight_grams = Column(Integer, nullable=True)
    min_order_qty = Column(Integer, nullable=False, default=1)
    max_order_qty = Column(Integer, nullable=True)
    tags = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    inventory = relationship("Inventory", back_populates="product", uselist=False, cascade="all, delete-orphan")
