# labsupply/models/inventory.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from labsupply.database import Base

# Stock levels of a single product (one row per product)
class Inventory(Base):
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), unique=True, nullable=False)

    on_hand = Column(Integer, nullable=False, default=0)
    # Units held for funded orders that have not shipped yet
    reserved = Column(Integer, nullable=False, default=0)
    incoming = Column(Integer, nullable=False, default=0)
    reorder_point = Column(Integer, nullable=False, default=10)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="inventory")

    @property
    def available_qty(self) -> int:
        # Not clamped: a negative value means the product is oversold
        return (self.on_hand or 0) - (self.reserved or 0)
