# labsupply/models/admin_user.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from labsupply.database import Base

ADMIN_ROLES = ("super_admin", "admin")

# Represents an operator of the admin console with authentication details and role
class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default="admin")
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    # Deactivated admins keep their row (and audit history) but cannot sign in
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
