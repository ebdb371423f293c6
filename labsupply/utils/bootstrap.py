# labsupply/utils/bootstrap.py
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from labsupply.models.admin_user import AdminUser
from labsupply.utils.hashing import get_password_hash

logger = logging.getLogger(__name__)


def ensure_super_admin(db: Session, email: Optional[str], password: Optional[str]) -> Optional[AdminUser]:
    """Create the first super admin if an account with this e-mail does not exist yet.

    An existing account is returned untouched: its role, password and active
    flag are never changed from here.
    """
    if not email or not password:
        return None

    normalized = email.strip().lower()
    admin = db.query(AdminUser).filter(func.lower(AdminUser.email) == normalized).first()
    if admin is not None:
        return admin

    admin = AdminUser(
        email=normalized,
        password_hash=get_password_hash(password),
        role="super_admin",
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Bootstrapped super admin %s", normalized)
    return admin
