# labsupply/models/audit.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from labsupply.database import Base

# Append-only record of admin and merchant actions
class AuditEvent(Base):
    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, index=True)

    # Event timestamp and core action details
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    actor_id = Column(Integer, ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True, index=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(64), index=True, nullable=False)
    entity_type = Column(String(32), index=True, nullable=True)
    entity_id = Column(String(64), nullable=True)
    status = Column(String(20), index=True, nullable=False, default="SUCCESS")
    ip = Column(String(64), nullable=True)

    # JSON container for flexible context data
    meta = Column(JSON, nullable=True)
