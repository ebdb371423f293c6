# labsupply/utils/tokenJWT.py
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from labsupply.config import settings
from labsupply.database import get_db
from labsupply.models.admin_user import AdminUser
from labsupply.models.merchant import Merchant

# Authorization scheme; missing headers are reported as 401 by the dependencies below
bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_SCOPE = "admin"
MERCHANT_SCOPE = "merchant"

# Generate a new JWT access token
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def _decode_subject(credentials: Optional[HTTPAuthorizationCredentials], scope: str) -> Optional[str]:
    # Returns the e-mail the token was issued to, or None when the token is unusable for this scope
    if credentials is None:
        return None
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("scope") != scope:
        return None
    return payload.get("sub")

# Retrieve the currently authenticated admin based on the JWT token
def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> AdminUser:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized. Admin authentication required.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    email = _decode_subject(credentials, ADMIN_SCOPE)
    if email is None:
        raise unauthorized

    admin = db.query(AdminUser).filter(AdminUser.email == email.lower()).first()
    # The admin MUST exist and be active; there is no fallback by e-mail domain
    if admin is None or not admin.is_active:
        raise unauthorized
    return admin

# Only super admins manage the admin team
def require_super_admin(current_admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
    if current_admin.role != "super_admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only super admins can manage admin users.")
    return current_admin

# Retrieve the currently authenticated merchant based on the JWT token
def get_current_merchant(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Merchant:
    email = _decode_subject(credentials, MERCHANT_SCOPE)
    if email is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Merchant authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    merchant = db.query(Merchant).filter(Merchant.email == email.lower()).first()
    if merchant is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized. Merchant authentication required.")
    return merchant
